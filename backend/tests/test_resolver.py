"""Tests for branch name defaults, TTL computation and create-or-reuse."""

from __future__ import annotations

import logging
import unittest
from datetime import datetime, timezone

from neon_ci.branching.resolver import (
    BranchResolver,
    build_create_payload,
    compute_expires_at,
    default_branch_name,
    resolve_branch_id,
)
from neon_ci.exceptions import ApiError, BranchCreateFailed, ParentNotFound
from neon_ci.logging_utils import SecretScrubberFilter

from fake_neon import PROJECT_ID, FakeNeonAPI

FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def _fixed_clock() -> datetime:
    return FIXED_NOW


class BranchNameTests(unittest.TestCase):
    def test_run_id_is_preferred(self) -> None:
        self.assertEqual(default_branch_name("42", clock=_fixed_clock), "42")

    def test_shard_index_is_appended(self) -> None:
        self.assertEqual(default_branch_name("42", "3", clock=_fixed_clock), "42-3")

    def test_generated_name_uses_utc_timestamp(self) -> None:
        self.assertEqual(default_branch_name(clock=_fixed_clock), "ci-20240101T000000Z")
        self.assertEqual(default_branch_name(None, "0", clock=_fixed_clock), "ci-20240101T000000Z-0")


class ExpiryTests(unittest.TestCase):
    def test_one_hour_ttl(self) -> None:
        self.assertEqual(compute_expires_at(3600, FIXED_NOW), "2024-01-01T01:00:00Z")

    def test_zero_ttl_means_no_expiry(self) -> None:
        self.assertIsNone(compute_expires_at(0, FIXED_NOW))

    def test_sub_second_precision_is_dropped(self) -> None:
        now = datetime(2024, 1, 1, 23, 59, 59, 999999, tzinfo=timezone.utc)
        self.assertEqual(compute_expires_at(1, now), "2024-01-02T00:00:00Z")


class CreatePayloadTests(unittest.TestCase):
    def test_minimal_payload_requests_read_write_endpoint(self) -> None:
        self.assertEqual(
            build_create_payload("ci-42"),
            {"branch": {"name": "ci-42"}, "endpoints": [{"type": "read_write"}]},
        )

    def test_optional_fields(self) -> None:
        payload = build_create_payload(
            "ci-42", parent_id="br-main", expires_at="2024-01-01T01:00:00Z", schema_only=True
        )
        self.assertEqual(
            payload["branch"],
            {
                "name": "ci-42",
                "parent_id": "br-main",
                "expires_at": "2024-01-01T01:00:00Z",
                "init_source": "schema-only",
            },
        )


class BranchResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.api = FakeNeonAPI()
        self.resolver = BranchResolver(self.api.client(), clock=_fixed_clock)

    def _scrub_resolver_logs(self) -> None:
        logger = logging.getLogger("neon_ci.branching.resolver")
        scrubber = SecretScrubberFilter()
        logger.addFilter(scrubber)
        self.addCleanup(logger.removeFilter, scrubber)

    def test_creates_when_missing(self) -> None:
        branch = self.resolver.resolve("ci-42")

        self.assertTrue(branch.created)
        self.assertTrue(branch.id.startswith("br-"))
        self.assertEqual(branch.name, "ci-42")
        posts = [body for method, _, body in self.api.calls if method == "POST"]
        self.assertEqual(posts, [{"branch": {"name": "ci-42"}, "endpoints": [{"type": "read_write"}]}])

    def test_second_resolution_reuses_branch(self) -> None:
        first = self.resolver.resolve("ci-42")
        second = self.resolver.resolve("ci-42")

        self.assertEqual(first.id, second.id)
        self.assertFalse(second.created)
        self.assertEqual(len(self.api.paths("POST")), 1)

    def test_substring_matches_are_not_reused(self) -> None:
        self.api.add_branch("ci-420", branch_id="br-other")

        branch = self.resolver.resolve("ci-42")

        self.assertTrue(branch.created)
        self.assertNotEqual(branch.id, "br-other")

    def test_first_exact_match_wins(self) -> None:
        self.api.add_branch("ci-42", branch_id="br-first")
        self.api.add_branch("ci-42", branch_id="br-second")

        self.assertEqual(self.resolver.resolve("ci-42").id, "br-first")

    def test_duplicate_names_are_reported(self) -> None:
        self.api.add_branch("ci-42", branch_id="br-first")
        self.api.add_branch("ci-42", branch_id="br-second")
        self._scrub_resolver_logs()

        with self.assertLogs("neon_ci.branching.resolver", level="WARNING") as logs:
            self.resolver.resolve("ci-42")

        self.assertEqual(
            logs.output,
            ["WARNING:neon_ci.branching.resolver:2 branches are named 'ci-42'; reusing the first (br-first)"],
        )

    def test_duplicate_parents_are_reported(self) -> None:
        self.api.add_branch("main", branch_id="br-main-1")
        self.api.add_branch("main", branch_id="br-main-2")
        self._scrub_resolver_logs()

        with self.assertLogs("neon_ci.branching.resolver", level="WARNING") as logs:
            parent_id = self.resolver.resolve_parent("main")

        self.assertEqual(parent_id, "br-main-1")
        self.assertIn("2 branches match 'main'; using the first (br-main-1)", logs.output[0])

    def test_unrecognised_search_body_does_not_create(self) -> None:
        self.api.route("GET", f"/projects/{PROJECT_ID}/branches", 200, {"items": []})

        with self.assertRaises(ApiError):
            self.resolver.resolve("ci-42")
        self.assertEqual(self.api.paths("POST"), [])

    def test_search_query_is_url_encoded(self) -> None:
        self.resolver.resolve("feature/x y")
        self.assertEqual(self.api.searches, ["feature/x y"])
        self.assertEqual(self.api.branches[0]["name"], "feature/x y")

    def test_parent_resolved_by_name_and_ttl_applied(self) -> None:
        self.api.add_branch("main", branch_id="br-main")

        branch = self.resolver.resolve("ci-42", parent="main", ttl_seconds=3600, schema_only=True)

        self.assertEqual(branch.parent_id, "br-main")
        self.assertEqual(branch.expires_at, "2024-01-01T01:00:00Z")
        create_body = [body for method, _, body in self.api.calls if method == "POST"][0]
        self.assertEqual(create_body["branch"]["parent_id"], "br-main")
        self.assertEqual(create_body["branch"]["expires_at"], "2024-01-01T01:00:00Z")
        self.assertEqual(create_body["branch"]["init_source"], "schema-only")

    def test_parent_resolved_by_id(self) -> None:
        self.api.add_branch("main", branch_id="br-main-1")
        self.assertEqual(self.resolver.resolve_parent("br-main-1"), "br-main-1")

    def test_missing_parent_is_fatal(self) -> None:
        with self.assertRaises(ParentNotFound):
            self.resolver.resolve("ci-42", parent="nope")
        self.assertEqual(self.api.paths("POST"), [])

    def test_create_without_id_fails(self) -> None:
        self.api.route("POST", f"/projects/{PROJECT_ID}/branches", 201, {"branch": {"id": None}})
        with self.assertRaises(BranchCreateFailed):
            self.resolver.resolve("ci-42")

    def test_create_error_status_is_api_error(self) -> None:
        self.api.route("POST", f"/projects/{PROJECT_ID}/branches", 422, {"message": "branch limit"})
        with self.assertRaises(ApiError) as ctx:
            self.resolver.resolve("ci-42")
        self.assertEqual(ctx.exception.status_code, 422)

    def test_resolve_branch_id_returns_none_when_absent(self) -> None:
        self.assertIsNone(resolve_branch_id(self.api.client(), "missing"))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
