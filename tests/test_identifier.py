"""Tests for prstack.core.identifier module."""

import pytest

from prstack.core.identifier import (
    format_resolution_error,
    parse_apply_spec,
    resolve_identifier,
    resolve_identifiers,
    resolve_up_to,
)
from prstack.core.models import CommitInfo, PRUnit


def single(id: str, commit_hash: str) -> PRUnit:
    return PRUnit(type="single", id=id, title=id, commits=[commit_hash], subjects=[id])


@pytest.fixture
def stack():
    """A single, a two-commit group and another single."""
    commits = [
        CommitInfo(hash="1111aaaa" + "0" * 32, subject="One"),
        CommitInfo(hash="2222bbbb" + "0" * 32, subject="Two"),
        CommitInfo(hash="2222cccc" + "0" * 32, subject="Three"),
        CommitInfo(hash="4444dddd" + "0" * 32, subject="Four"),
    ]
    units = [
        single("a1b2c3d4", commits[0].hash),
        PRUnit(
            type="group",
            id="auth-9f8e7d6c",
            title="Auth",
            commits=[commits[1].hash, commits[2].hash],
            subjects=["Two", "Three"],
        ),
        single("e5f6a7b8", commits[3].hash),
    ]
    return units, commits


class TestResolveIdentifier:
    """Tests for resolve_identifier function."""

    def test_unique_unit_prefix(self):
        """Test that a unique prefix of a unit id resolves."""
        units = [single("ab12cd34", "f" * 40)]

        result = resolve_identifier("ab", units, [])

        assert result.ok is True
        assert result.unit.id == "ab12cd34"

    def test_ambiguous_unit_prefix(self):
        """Test that several matching unit ids are ambiguous."""
        units = [single("ab111111", "e" * 40), single("ab222222", "f" * 40)]

        result = resolve_identifier("ab", units, [])

        assert result.ok is False
        assert result.error == "ambiguous"
        assert result.matches == ["ab111111", "ab222222"]

    def test_exact_match_beats_prefix(self):
        """Test that an exact id is not shadowed by a longer id with that prefix."""
        units = [single("abcd", "e" * 40), single("abcdef12", "f" * 40)]

        result = resolve_identifier("abcd", units, [])

        assert result.ok is True
        assert result.unit.id == "abcd"

    def test_group_id(self, stack):
        """Test resolving a group by its id."""
        units, commits = stack

        result = resolve_identifier("auth-9f8e7d6c", units, commits)

        assert result.ok is True
        assert result.unit.type == "group"

    def test_member_hash_resolves_to_group(self, stack):
        """Test that a group member's hash resolves to the group."""
        units, commits = stack

        result = resolve_identifier("2222c", units, commits)

        assert result.ok is True
        assert result.unit.id == "auth-9f8e7d6c"

    def test_single_hash_prefix(self, stack):
        """Test that a hash prefix of a single resolves to that single."""
        units, commits = stack

        result = resolve_identifier("4444", units, commits)

        assert result.ok is True
        assert result.unit.id == "e5f6a7b8"

    def test_ambiguous_hash_prefix_lists_short_hashes(self, stack):
        """Test that several matching hashes are listed in short form."""
        units, commits = stack

        result = resolve_identifier("2222", units, commits)

        assert result.ok is False
        assert result.error == "ambiguous"
        assert result.matches == ["2222bbbb", "2222cccc"]

    def test_not_found(self, stack):
        """Test an identifier that matches nothing."""
        units, commits = stack

        result = resolve_identifier("9999", units, commits)

        assert result.ok is False
        assert result.error == "not-found"
        assert result.identifier == "9999"

    def test_unit_ids_checked_before_hashes(self):
        """Test that a unit id prefix wins over a commit hash prefix."""
        commits = [CommitInfo(hash="ab" + "0" * 38, subject="x"), CommitInfo(hash="cd" + "0" * 38, subject="y")]
        units = [single("cd000001", commits[0].hash), single("ef000002", commits[1].hash)]

        result = resolve_identifier("cd", units, commits)

        assert result.unit.id == "cd000001"

    def test_same_inputs_same_result(self, stack):
        """Test that resolution depends only on its inputs."""
        units, commits = stack

        assert resolve_identifier("2222", units, commits) == resolve_identifier("2222", units, commits)


class TestResolveIdentifiers:
    """Tests for resolve_identifiers function."""

    def test_collects_all_errors(self, stack):
        """Test that failures do not stop later identifiers from resolving."""
        units, commits = stack

        unit_ids, errors = resolve_identifiers(["9999", "a1b2", "2222", "auth"], units, commits)

        assert unit_ids == {"a1b2c3d4", "auth-9f8e7d6c"}
        assert [e.error for e in errors] == ["not-found", "ambiguous"]

    def test_error_count_matches_individual_failures(self, stack):
        """Test that each failing identifier yields exactly one error."""
        units, commits = stack
        identifiers = ["zz", "a1", "yy", "e5"]

        _, errors = resolve_identifiers(identifiers, units, commits)

        individually_failing = [i for i in identifiers if not resolve_identifier(i, units, commits).ok]
        assert len(errors) == len(individually_failing) == 2

    def test_deduplicates(self, stack):
        """Test that two identifiers for one unit give one id."""
        units, commits = stack

        unit_ids, errors = resolve_identifiers(["2222b", "2222c", "auth"], units, commits)

        assert unit_ids == {"auth-9f8e7d6c"}
        assert errors == []


class TestResolveUpTo:
    """Tests for resolve_up_to function."""

    def test_returns_bottom_through_target(self, stack):
        """Test selecting a unit and everything below it."""
        units, commits = stack

        result = resolve_up_to("auth", units, commits)

        assert result.ok is True
        assert result.unit_ids == ["a1b2c3d4", "auth-9f8e7d6c"]

    def test_bottom_unit(self, stack):
        """Test that the bottom unit selects only itself."""
        units, commits = stack

        result = resolve_up_to("a1b2c3d4", units, commits)

        assert result.unit_ids == ["a1b2c3d4"]

    def test_propagates_error(self, stack):
        """Test that a failed resolution is wrapped."""
        units, commits = stack

        result = resolve_up_to("9999", units, commits)

        assert result.ok is False
        assert result.error.error == "not-found"


class TestFormatResolutionError:
    """Tests for format_resolution_error function."""

    def test_not_found_message(self, stack):
        """Test the not-found message."""
        units, commits = stack

        message = format_resolution_error(resolve_identifier("9999", units, commits))

        assert message == "Error: No commit or group matching '9999' found in stack"

    def test_ambiguous_message_lists_matches(self, stack):
        """Test the ambiguous message."""
        units, commits = stack

        message = format_resolution_error(resolve_identifier("2222", units, commits))

        assert "'2222' matches multiple commits" in message
        assert "Matches: 2222bbbb, 2222cccc" in message


class TestParseApplySpec:
    """Tests for parse_apply_spec function."""

    def test_parses_array(self):
        """Test a valid identifier array."""
        assert parse_apply_spec('["a1b2c3d4", "auth-9f8e7d6c"]') == ["a1b2c3d4", "auth-9f8e7d6c"]

    def test_invalid_json(self):
        """Test that malformed JSON is rejected."""
        with pytest.raises(ValueError, match="Expected JSON array"):
            parse_apply_spec("[not json")

    def test_not_an_array(self):
        """Test that a JSON object is rejected."""
        with pytest.raises(ValueError, match="Expected JSON array"):
            parse_apply_spec('{"a": 1}')

    def test_non_string_item(self):
        """Test that non-string items are rejected."""
        with pytest.raises(ValueError, match="must be strings"):
            parse_apply_spec('["a1b2c3d4", 5]')

    def test_invalid_identifier_format(self):
        """Test that an identifier with a bad shape is rejected with its value."""
        with pytest.raises(ValueError, match="NOT HEX"):
            parse_apply_spec('["NOT HEX"]')
