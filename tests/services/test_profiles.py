"""Tests for ProfileService."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest

from consulthive.audit.store import query_audit_trail
from consulthive.domain.models import Principal
from consulthive.domain.types import UserRole
from consulthive.operations.inputs import (
    CreateConsultantProfileInput,
    EmptyInput,
    SearchDirectoryInput,
    UpdateConsultantProfileInput,
)
from consulthive.operations.results import ErrorCode
from consulthive.store.database import Database


class TestGet:
    def test_client_without_profile(self, services: dict[str, Any], client: Principal) -> None:
        result = services["profiles"].get(client, EmptyInput())
        assert result.data["user"].email == "clara@example.com"
        assert result.data["profile"] is None

    def test_consultant_profile(self, services: dict[str, Any], consultant: Principal) -> None:
        profile = services["profiles"].get(consultant, EmptyInput()).data["profile"]
        assert profile.hourly_rate == Decimal("120")
        assert profile.skills == ["postgres", "python"]

    def test_unknown_user(self, services: dict[str, Any]) -> None:
        ghost = Principal(user_id="ghost", role=UserRole.CLIENT)
        assert services["profiles"].get(ghost, EmptyInput()).code == ErrorCode.NOT_FOUND


class TestCreateConsultant:
    def test_client_promoted_to_both(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        result = services["profiles"].create_consultant(
            client,
            CreateConsultantProfileInput(hourly_rate="95", skills=["Terraform"], currency="gbp"),
        )
        assert result.success
        assert result.data.currency == "GBP"
        assert result.data.skills == ["terraform"]
        user = services["profiles"].get(client, EmptyInput()).data["user"]
        assert user.role == UserRole.BOTH

    def test_one_profile_per_user(
        self, services: dict[str, Any], consultant: Principal
    ) -> None:
        result = services["profiles"].create_consultant(
            consultant, CreateConsultantProfileInput(hourly_rate="10")
        )
        assert result.code == ErrorCode.ALREADY_EXISTS

    def test_blank_skill(self, services: dict[str, Any], outsider: Principal) -> None:
        result = services["profiles"].create_consultant(
            outsider, CreateConsultantProfileInput(hourly_rate="10", skills=[""])
        )
        assert result.code == ErrorCode.INVALID_INPUT


class TestUpdateConsultant:
    def test_patch_only_touches_supplied_fields(
        self, services: dict[str, Any], database: Database, consultant: Principal
    ) -> None:
        result = services["profiles"].update_consultant(
            consultant, UpdateConsultantProfileInput(hourly_rate="140", bio="Postgres nerd")
        )

        assert result.success, result
        assert result.data.hourly_rate == Decimal("140")
        assert result.data.bio == "Postgres nerd"
        assert result.data.headline == "Database migrations"
        assert result.data.skills == ["postgres", "python"]
        with database.transaction(immediate=False) as uow:
            (entry,) = query_audit_trail(uow.conn, action="CONSULTANT_PROFILE_UPDATED")
        assert entry["metadata"] == {"fields": ["bio", "hourly_rate"]}

    def test_skills_replaced_and_headline_cleared(
        self, services: dict[str, Any], consultant: Principal
    ) -> None:
        result = services["profiles"].update_consultant(
            consultant, UpdateConsultantProfileInput(skills=["Rust"], headline=None)
        )
        assert result.data.skills == ["rust"]
        assert result.data.headline is None

    def test_hidden_from_directory(
        self, services: dict[str, Any], consultant: Principal
    ) -> None:
        services["profiles"].update_consultant(
            consultant, UpdateConsultantProfileInput(consent_directory=False)
        )
        page = services["profiles"].search_directory(consultant, SearchDirectoryInput()).data
        assert page.total == 0

    def test_requires_profile(self, services: dict[str, Any], client: Principal) -> None:
        result = services["profiles"].update_consultant(
            client, UpdateConsultantProfileInput(bio="x")
        )
        assert result.code == ErrorCode.NO_PROFILE

    def test_rate_cannot_be_nulled(self) -> None:
        with pytest.raises(ValueError):
            UpdateConsultantProfileInput(hourly_rate=None)


class TestSearchDirectory:
    @pytest.fixture(autouse=True)
    def _listed(self, consultant: Principal, second_consultant: Principal) -> None:
        """Conor (python, postgres; 120/h) and Dana (postgres; 90/h)."""

    def _rates(
        self, services: dict[str, Any], principal: Principal, **filters: Any
    ) -> list[Decimal]:
        page = services["profiles"].search_directory(
            principal, SearchDirectoryInput(**filters)
        ).data
        return [p.hourly_rate for p in page.items]

    def test_newest_first(self, services: dict[str, Any], client: Principal) -> None:
        assert self._rates(services, client) == [Decimal("90"), Decimal("120")]

    def test_skill_filter_normalizes_names(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        assert self._rates(services, client, skills=["Python"]) == [Decimal("120")]

    def test_rate_bounds(self, services: dict[str, Any], client: Principal) -> None:
        assert self._rates(services, client, max_rate="100") == [Decimal("90")]
        assert self._rates(services, client, min_rate="100") == [Decimal("120")]

    def test_pagination(self, services: dict[str, Any], client: Principal) -> None:
        page = services["profiles"].search_directory(
            client, SearchDirectoryInput(limit=1, page=2)
        ).data
        assert page.total == 2
        assert [p.hourly_rate for p in page.items] == [Decimal("120")]

    def test_unavailable_listed_on_request(
        self, services: dict[str, Any], client: Principal, consultant: Principal
    ) -> None:
        services["profiles"].update_consultant(
            consultant, UpdateConsultantProfileInput(is_available=False)
        )
        assert self._rates(services, client) == [Decimal("90")]
        assert self._rates(services, client, is_available=False) == [Decimal("120")]

    def test_blank_skill(self, services: dict[str, Any], client: Principal) -> None:
        result = services["profiles"].search_directory(
            client, SearchDirectoryInput(skills=[" "])
        )
        assert result.code == ErrorCode.INVALID_INPUT
