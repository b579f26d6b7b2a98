"""Tests for the neon-ci command group."""

from __future__ import annotations

import shlex
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from click.testing import CliRunner

from neon_ci import cli as cli_module
from neon_ci.cli import cli

from fake_neon import API_KEY, PROJECT_ID, FakeNeonAPI

_CLEARED = (
    "BASH_ENV",
    "NEON_BRANCH_ID",
    "NEON_BRANCH_NAME",
    "NEON_PARENT_BRANCH",
    "NEON_ROLE",
    "NEON_DATABASE",
    "NEON_PASSWORD",
    "NEON_BRANCH_TTL_SECONDS",
    "NEON_SCHEMA_ONLY",
    "NEON_GET_AUTH_URL",
    "NEON_GET_DATA_API_URL",
    "NEON_API_BASE_URL",
    "CIRCLE_PIPELINE_NUM",
    "GITHUB_RUN_ID",
    "CI_PIPELINE_ID",
    "CIRCLE_NODE_INDEX",
    "CI_NODE_INDEX",
)


def _read_exports(path: Path) -> dict[str, str]:
    values = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        key, _, raw = line.removeprefix("export ").partition("=")
        values[key] = shlex.split(raw)[0]
    return values


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.api = FakeNeonAPI()
        self.runner = CliRunner()
        self.env = {name: None for name in _CLEARED}
        self.env.update({"NEON_API_KEY": API_KEY, "NEON_PROJECT_ID": PROJECT_ID})
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

        patchers = [
            mock.patch.object(cli_module, "client_from_settings", lambda settings: self.api.client()),
            mock.patch.object(cli_module, "configure_logging", lambda level: None),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def _invoke(self, *args: str, **env: str | None):
        return self.runner.invoke(cli, list(args), env={**self.env, **env})

    def test_create_writes_env_snapshot(self) -> None:
        env_file = Path(self.tmp.name) / "bash_env"
        self.api.default_password = "it's a p@ss"

        result = self._invoke("create", "--branch-name", "ci-42", "--env-file", str(env_file))

        self.assertEqual(result.exit_code, 0, result.output)
        exports = _read_exports(env_file)
        self.assertEqual(exports["PGPASSWORD"], "it's a p@ss")
        self.assertTrue(exports["DATABASE_URL"].startswith("postgresql://neondb_owner:it%27s%20a%20p%40ss@"))
        self.assertIn("-pooler.", exports["PGHOST_POOLED"])
        self.assertIn("=== Neon Branch Ready ===", result.output)
        self.assertIn("Created:  true", result.output)
        self.assertIn("API calls: 4 (200x3, 201x1)", result.output)

    def test_create_reuse_reports_not_created(self) -> None:
        self.api.add_branch("ci-42", branch_id="br-ci-42")

        result = self._invoke("create", "--branch-name", "ci-42", BASH_ENV=str(Path(self.tmp.name) / "env"))

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Created:  false", result.output)
        self.assertEqual(self.api.paths("POST"), [])

    def test_create_prints_exports_without_env_file(self) -> None:
        result = self._invoke("create", "--branch-name", "ci-42", "--password", "pw")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("export PGPASSWORD=pw", result.output)

    def test_create_uses_env_settings(self) -> None:
        self.api.add_branch("main", branch_id="br-main")

        result = self._invoke(
            "create",
            "--env-file",
            str(Path(self.tmp.name) / "env"),
            CIRCLE_PIPELINE_NUM="55",
            CIRCLE_NODE_INDEX="1",
            NEON_PARENT_BRANCH="main",
            NEON_SCHEMA_ONLY="TRUE",
        )

        self.assertEqual(result.exit_code, 0, result.output)
        create_body = [body for method, _, body in self.api.calls if method == "POST"][0]
        self.assertEqual(create_body["branch"]["name"], "55-1")
        self.assertEqual(create_body["branch"]["parent_id"], "br-main")
        self.assertEqual(create_body["branch"]["init_source"], "schema-only")

    def test_missing_api_key_exits_non_zero(self) -> None:
        result = self._invoke("create", "--branch-name", "ci-42", NEON_API_KEY=None)

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error: Neon API key is not set.", result.output)
        self.assertEqual(self.api.calls, [])

    def test_missing_parent_exits_non_zero(self) -> None:
        result = self._invoke("create", "--branch-name", "ci-42", "--parent", "ghost")

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Parent branch 'ghost' not found.", result.output)

    def test_delete_is_idempotent(self) -> None:
        self.api.add_branch("ci-42", branch_id="br-ci-42")

        first = self._invoke("delete", "--branch-id", "br-ci-42")
        second = self._invoke("delete", NEON_BRANCH_ID="br-ci-42")

        self.assertEqual(first.exit_code, 0, first.output)
        self.assertEqual(second.exit_code, 0, second.output)
        self.assertIn("already gone", second.output)

    def test_delete_without_branch_id(self) -> None:
        result = self._invoke("delete")

        self.assertEqual(result.exit_code, 1)
        self.assertIn("--branch-id", result.output)

    def test_malformed_ttl_only_fails_create(self) -> None:
        self.api.add_branch("ci-42", branch_id="br-ci-42")

        created = self._invoke("create", "--branch-name", "ci-42", NEON_BRANCH_TTL_SECONDS="an hour")
        deleted = self._invoke("delete", "--branch-id", "br-ci-42", NEON_BRANCH_TTL_SECONDS="an hour")

        self.assertEqual(created.exit_code, 1)
        self.assertIn("Invalid TTL seconds", created.output)
        self.assertEqual(deleted.exit_code, 0, deleted.output)
        self.assertIn("Branch br-ci-42 deleted.", deleted.output)

    def test_reset_by_name(self) -> None:
        self.api.add_branch("ci-42", branch_id="br-ci-42")

        result = self._invoke("reset", "ci-42")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Branch br-ci-42 reset.", result.output)

    def test_reset_failure_exits_non_zero(self) -> None:
        self.api.route("POST", f"/projects/{PROJECT_ID}/branches/br-ci-42/reset", 500, {"message": "nope"})

        result = self._invoke("reset", "br-ci-42")

        self.assertEqual(result.exit_code, 1)
        self.assertIn("HTTP 500", result.output)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
