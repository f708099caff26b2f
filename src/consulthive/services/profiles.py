"""Consultant profiles: the prerequisite for offers and matching."""

from __future__ import annotations

import sqlite3
from typing import Any

import structlog

from consulthive.audit.models import AuditAction
from consulthive.config import Settings
from consulthive.domain.models import ConsultantProfile, Principal, SkillTag
from consulthive.domain.types import UserRole, normalize_skill_slug
from consulthive.operations.inputs import (
    CreateConsultantProfileInput,
    EmptyInput,
    SearchDirectoryInput,
    UpdateConsultantProfileInput,
    patch_fields,
)
from consulthive.operations.results import ErrorCode, OperationError, OperationResult, Page, ok
from consulthive.services.common import page_window, service_operation
from consulthive.store.database import Database, UnitOfWork

logger = structlog.get_logger()


def _resolve_skills(uow: UnitOfWork, names: list[str]) -> list[SkillTag]:
    try:
        return uow.skills.upsert_many(names)
    except ValueError as exc:
        raise OperationError(ErrorCode.INVALID_INPUT, str(exc)) from exc


class ProfileService:
    def __init__(self, database: Database, settings: Settings) -> None:
        self._db = database
        self._settings = settings

    @service_operation
    def get(self, principal: Principal, data: EmptyInput) -> OperationResult[Any]:
        """Return the caller's user record and consultant profile (or None)."""
        with self._db.transaction(immediate=False) as uow:
            user = uow.users.get(principal.user_id)
            if user is None:
                raise OperationError(ErrorCode.NOT_FOUND, "User not found")
            profile = uow.profiles.get_by_user(user.id)
        return ok({"user": user, "profile": profile})

    @service_operation
    def create_consultant(
        self, principal: Principal, data: CreateConsultantProfileInput
    ) -> OperationResult[Any]:
        """Create the caller's consultant profile.

        A user holds at most one profile.  A plain CLIENT is promoted to
        BOTH so they can keep their own requests and make offers.
        """
        currency = (data.currency or self._settings.default_currency).upper()
        try:
            with self._db.transaction() as uow:
                user = uow.users.get(principal.user_id)
                if user is None:
                    raise OperationError(ErrorCode.NOT_FOUND, "User not found")
                if uow.profiles.get_by_user(user.id) is not None:
                    raise OperationError(ErrorCode.ALREADY_EXISTS, "Profile already exists")

                tags = _resolve_skills(uow, data.skills)
                profile = uow.profiles.insert(
                    user.id,
                    hourly_rate=data.hourly_rate,
                    currency=currency,
                    headline=data.headline,
                    bio=data.bio,
                    is_available=data.is_available,
                    consent_directory=data.consent_directory,
                    skill_tags=tags,
                )
                if user.role == UserRole.CLIENT:
                    uow.users.set_role(user.id, UserRole.BOTH)
                uow.audit.log(
                    principal.user_id,
                    AuditAction.CONSULTANT_PROFILE_CREATED,
                    "ConsultantProfile",
                    profile.id,
                    {"skills": profile.skills, "previous_role": user.role.value},
                )
        except sqlite3.IntegrityError as exc:
            raise OperationError(ErrorCode.ALREADY_EXISTS, "Profile already exists") from exc

        logger.info("Consultant profile created", user_id=user.id, profile_id=profile.id)
        return ok(profile)

    @service_operation
    def update_consultant(
        self, principal: Principal, data: UpdateConsultantProfileInput
    ) -> OperationResult[Any]:
        """Patch the caller's consultant profile; ``skills`` replaces the whole list."""
        fields = patch_fields(data)
        changed = sorted(fields)
        skills = fields.pop("skills", None)
        if "currency" in fields:
            fields["currency"] = fields["currency"].upper()

        with self._db.transaction() as uow:
            profile = uow.profiles.get_by_user(principal.user_id)
            if profile is None:
                raise OperationError(ErrorCode.NO_PROFILE)
            uow.profiles.update_fields(profile.id, fields)
            if skills is not None:
                uow.profiles.set_skills(profile.id, _resolve_skills(uow, skills))
            uow.audit.log(
                principal.user_id,
                AuditAction.CONSULTANT_PROFILE_UPDATED,
                "ConsultantProfile",
                profile.id,
                {"fields": changed},
            )
            updated = uow.profiles.get(profile.id)

        logger.info("Consultant profile updated", profile_id=profile.id, fields=changed)
        return ok(updated)

    @service_operation
    def search_directory(
        self, principal: Principal, data: SearchDirectoryInput
    ) -> OperationResult[Any]:
        """Page through consultants listed in the directory."""
        try:
            slugs = sorted({normalize_skill_slug(name) for name in data.skills})
        except ValueError as exc:
            raise OperationError(ErrorCode.INVALID_INPUT, str(exc)) from exc

        limit, offset = page_window(data, self._settings)
        with self._db.transaction(immediate=False) as uow:
            items, total = uow.profiles.search_directory(
                skill_slugs=slugs,
                min_rate=data.min_rate,
                max_rate=data.max_rate,
                is_available=data.is_available,
                limit=limit,
                offset=offset,
            )
        return ok(Page[ConsultantProfile](items=items, total=total, page=data.page, limit=limit))
