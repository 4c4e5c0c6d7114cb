import unittest

from deploykit.config import DeploymentConfig
from deploykit.interaction import InputCollector, RunInputs


class ScriptedPrompt:
    """Answers prompts in order and records what was asked."""

    def __init__(self, *answers: str) -> None:
        self.answers = list(answers)
        self.asked: list[str] = []

    def __call__(self, text: str) -> str:
        self.asked.append(text)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


class InputCollectorTests(unittest.TestCase):
    def test_cli_values_take_precedence_over_defaults(self) -> None:
        defaults = DeploymentConfig(default_host="10.0.0.1", default_username="ubuntu", default_app_port=3000)
        collector = InputCollector(interactive=False)
        inputs = collector.collect({"host": "203.0.113.10", "app_port": "8080"}, defaults)

        self.assertEqual(inputs.host, "203.0.113.10")
        self.assertEqual(inputs.user, "ubuntu")
        self.assertEqual(inputs.app_port, "8080")
        self.assertEqual(inputs.branch, "main")

    def test_prompts_only_for_missing_values(self) -> None:
        defaults = DeploymentConfig(default_key_path="~/.ssh/id_rsa")
        prompt = ScriptedPrompt("https://github.com/acme/shop.git", "", "deploy", "203.0.113.10", "8080")
        secret = ScriptedPrompt("ghp_token ")
        collector = InputCollector(prompt=prompt, secret_prompt=secret)
        inputs = collector.collect({}, defaults)

        self.assertEqual(inputs.repo_url, "https://github.com/acme/shop.git")
        self.assertEqual(inputs.token, "ghp_token")
        self.assertEqual(inputs.branch, "main")
        self.assertEqual(inputs.key_path, "~/.ssh/id_rsa")
        self.assertEqual(len(prompt.asked), 5)
        self.assertIn("[main]", prompt.asked[1])

    def test_ssh_url_skips_token_prompt(self) -> None:
        secret = ScriptedPrompt()
        collector = InputCollector(prompt=ScriptedPrompt("main"), secret_prompt=secret)
        values = {
            "repo_url": "git@github.com:acme/shop.git",
            "user": "deploy",
            "host": "203.0.113.10",
            "key_path": "/keys/id",
            "app_port": "8080",
        }
        inputs = collector.collect(values, DeploymentConfig())
        self.assertIsNone(inputs.token)
        self.assertEqual(secret.asked, [])

    def test_cleanup_never_asks_for_token_branch_or_port(self) -> None:
        prompt = ScriptedPrompt()
        secret = ScriptedPrompt()
        values = {
            "repo_url": "https://github.com/acme/shop.git",
            "user": "deploy",
            "host": "203.0.113.10",
            "key_path": "/keys/id",
        }
        inputs = InputCollector(prompt=prompt, secret_prompt=secret).collect(values, DeploymentConfig(), cleanup=True)
        self.assertEqual(prompt.asked, [])
        self.assertEqual(secret.asked, [])
        self.assertEqual(inputs.app_port, "")

    def test_closed_input_propagates(self) -> None:
        collector = InputCollector(prompt=ScriptedPrompt(), secret_prompt=ScriptedPrompt())
        with self.assertRaises(EOFError):
            collector.collect({}, DeploymentConfig())

    def test_token_hidden_from_repr(self) -> None:
        inputs = RunInputs(repo_url="https://example.com/a.git", token="ghp_secret")
        self.assertNotIn("ghp_secret", repr(inputs))
        self.assertTrue(inputs.is_https)


if __name__ == "__main__":
    unittest.main()
