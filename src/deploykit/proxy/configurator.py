"""nginx site installation for the deployed application."""

from __future__ import annotations

from ..errors import DeploymentError
from ..models import ProxySiteConfig
from ..scripts import templates
from ..ssh.executor import RemoteExecutor
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ProxyConfigurator:
    """Routes public port 80 to the application's loopback port.

    The site file is keyed by site name and overwritten on every run. The
    proxy is reloaded only after ``nginx -t`` accepts the full configuration.
    """

    def __init__(self, executor: RemoteExecutor, *, disable_default_site: bool = True) -> None:
        self.executor = executor
        self.disable_default_site = disable_default_site

    def configure_proxy(self, site_name: str, app_port: int) -> ProxySiteConfig:
        site = ProxySiteConfig(site_name=site_name, upstream_port=app_port)
        logger.info(
            "Configuring nginx site %s: port %s -> 127.0.0.1:%s",
            site.site_name,
            site.listen_port,
            site.upstream_port,
        )
        installed = self.executor.execute(
            templates.INSTALL_SITE,
            site_name=site.site_name,
            config=site.render(),
            drop_default="yes" if self.disable_default_site else "no",
        )
        if not installed.ok:
            raise DeploymentError(f"Installing nginx site {site_name} failed: {installed.stderr}")

        tested = self.executor.execute(templates.TEST_PROXY_CONFIG)
        if not tested.ok:
            raise DeploymentError(
                f"nginx configuration test failed; proxy not reloaded: {tested.stderr}"
            )

        reloaded = self.executor.execute(templates.RELOAD_PROXY)
        if not reloaded.ok:
            raise DeploymentError(f"Reloading nginx failed: {reloaded.stderr}")
        logger.info("Nginx configured and reloaded.")
        return site

    def remove_proxy(self, site_name: str) -> bool:
        """Best-effort removal of the site; reloads only a valid config."""
        removed = self.executor.execute(templates.REMOVE_SITE, site_name=site_name)
        if not removed.ok:
            logger.warning("Removing nginx site %s failed: %s", site_name, removed.stderr)
            return False
        tested = self.executor.execute(templates.TEST_PROXY_CONFIG)
        if not tested.ok:
            logger.warning("nginx configuration test failed; not reloading: %s", tested.stderr)
            return False
        reloaded = self.executor.execute(templates.RELOAD_PROXY)
        if not reloaded.ok:
            logger.warning("Reloading nginx failed: %s", reloaded.stderr)
            return False
        logger.info("Nginx site %s removed.", site_name)
        return True
