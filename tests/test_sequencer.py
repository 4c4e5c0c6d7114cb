import unittest

from deploykit.deployer import DeploymentSequencer, image_name_for
from deploykit.errors import DeploymentError
from deploykit.models import BuildDescriptor, DescriptorKind

from fakes import FakeExecutor, result

COMPOSE = BuildDescriptor(kind=DescriptorKind.COMPOSE, filename="docker-compose.yml")
DOCKERFILE = BuildDescriptor(kind=DescriptorKind.DOCKERFILE, filename="Dockerfile")


class DeploymentSequencerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sleeps: list[float] = []

    def _sequencer(self, executor: FakeExecutor) -> DeploymentSequencer:
        return DeploymentSequencer(executor, settle_delay=3, sleep=self.sleeps.append)  # type: ignore[arg-type]

    def test_compose_path_stops_prunes_then_starts(self) -> None:
        executor = FakeExecutor()
        report = self._sequencer(executor).deploy(COMPOSE, 8080, site_name="shop")

        self.assertEqual(executor.names, ["stop-compose", "prune", "up-compose", "container-status"])
        self.assertEqual(
            executor.params_for("up-compose"),
            {"project_dir": "/opt/shop", "compose_file": "docker-compose.yml", "compose_command": "docker compose"},
        )
        self.assertEqual(self.sleeps, [3])
        self.assertTrue(report.stopped_prior)
        self.assertIn("0.0.0.0:8080", report.container_status)

    def test_dockerfile_path_uses_fixed_names_and_port(self) -> None:
        executor = FakeExecutor()
        self._sequencer(executor).deploy(DOCKERFILE, 5000, site_name="Shop.Web")

        self.assertEqual(executor.names, ["remove-container", "prune", "up-dockerfile", "container-status"])
        self.assertEqual(executor.params_for("remove-container"), {"container": "app"})
        self.assertEqual(
            executor.params_for("up-dockerfile"),
            {"project_dir": "/opt/shop", "image": "shop.web:latest", "container": "app", "port": 5000},
        )

    def test_teardown_failures_are_tolerated(self) -> None:
        executor = FakeExecutor(
            responses={
                "stop-compose": result(stderr="no such service", status=1),
                "prune": result(stderr="daemon busy", status=1),
            }
        )
        with self.assertLogs("deploykit.deployer.sequencer", level="WARNING"):
            report = self._sequencer(executor).deploy(COMPOSE, 8080, site_name="shop")
        self.assertFalse(report.stopped_prior)
        self.assertFalse(report.pruned)
        self.assertIn("up-compose", executor.names)

    def test_failed_start_raises_deployment_error(self) -> None:
        executor = FakeExecutor(responses={"up-compose": result(stderr="build failed", status=1)})
        with self.assertRaises(DeploymentError):
            self._sequencer(executor).deploy(COMPOSE, 8080, site_name="shop")
        self.assertNotIn("container-status", executor.names)

    def test_unknown_compose_command_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self._sequencer(FakeExecutor()).deploy(COMPOSE, 8080, site_name="shop", compose_command="rm -rf /")

    def test_teardown_attempts_every_removal(self) -> None:
        executor = FakeExecutor(responses={"teardown-compose": result(status=1)})
        clean = self._sequencer(executor).teardown(site_name="shop")
        self.assertFalse(clean)
        self.assertEqual(executor.names, ["teardown-compose", "remove-container", "remove-image"])
        self.assertEqual(executor.params_for("remove-image"), {"image": "shop:latest"})

    def test_image_name_sanitized(self) -> None:
        self.assertEqual(image_name_for("My Repo"), "my-repo:latest")
        self.assertEqual(image_name_for("!!!"), "app_image:latest")


if __name__ == "__main__":
    unittest.main()
