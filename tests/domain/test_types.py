"""Tests for the domain enumerations and skill slug normalization."""

import pytest

from consulthive.domain.types import (
    CONSULTANT_ROLES,
    EDITABLE_REQUEST_STATES,
    WORKSPACE_OPEN_STATES,
    EngagementStatus,
    RequestStatus,
    UserRole,
    normalize_skill_slug,
)


class TestEnums:
    def test_request_statuses(self) -> None:
        assert [s.value for s in RequestStatus] == [
            "DRAFT",
            "PUBLISHED",
            "MATCHING",
            "BOOKED",
            "IN_PROGRESS",
            "COMPLETED",
            "CANCELLED",
        ]

    def test_enums_compare_as_strings(self) -> None:
        assert UserRole.ADMIN == "ADMIN"
        assert RequestStatus("BOOKED") is RequestStatus.BOOKED

    def test_state_groups(self) -> None:
        assert UserRole.CLIENT not in CONSULTANT_ROLES
        assert UserRole.BOTH in CONSULTANT_ROLES
        assert EngagementStatus.TRANSFERRED not in WORKSPACE_OPEN_STATES
        assert RequestStatus.BOOKED not in EDITABLE_REQUEST_STATES


class TestNormalizeSkillSlug:
    @pytest.mark.parametrize(
        ("name", "slug"),
        [
            ("Python", "python"),
            ("Data  Engineering", "data-engineering"),
            ("  machine\tlearning \n", "machine-learning"),
            ("already-slugged", "already-slugged"),
        ],
    )
    def test_normalizes(self, name: str, slug: str) -> None:
        assert normalize_skill_slug(name) == slug

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_empty_rejected(self, name: str) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            normalize_skill_slug(name)
