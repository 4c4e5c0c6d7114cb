"""Source synchronization: working copy and remote mirror."""

from .synchronizer import SourceSynchronizer, detect_build_descriptor, ssh_transport

__all__ = ["SourceSynchronizer", "detect_build_descriptor", "ssh_transport"]
