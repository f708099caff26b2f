"""Users, consultant profiles and skill tags."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from consulthive.domain.models import ConsultantProfile, SkillTag, User
from consulthive.domain.types import UserRole, normalize_skill_slug
from consulthive.store.rows import money_to_db, new_id, to_db_time, update_columns, utcnow

# Columns a profile patch may touch
PROFILE_COLUMNS: frozenset[str] = frozenset(
    {"headline", "bio", "hourly_rate", "currency", "is_available", "consent_directory"}
)


class UserRepository:
    """Read and create marketplace users.

    Users are owned by the external identity layer; the engine only reads
    them, promotes roles and inserts seed rows.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, user_id: str) -> User | None:
        row = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return User.model_validate(dict(row)) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        row = self._conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return User.model_validate(dict(row)) if row is not None else None

    def insert(
        self,
        email: str,
        *,
        role: UserRole = UserRole.CLIENT,
        first_name: str | None = None,
        last_name: str | None = None,
        user_id: str | None = None,
    ) -> User:
        user = User(
            id=user_id or new_id(),
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            created_at=utcnow(),
        )
        self._conn.execute(
            """
            INSERT INTO users (id, email, first_name, last_name, role, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                user.id,
                user.email,
                user.first_name,
                user.last_name,
                user.role.value,
                to_db_time(user.created_at),
            ),
        )
        return user

    def set_role(self, user_id: str, role: UserRole) -> None:
        self._conn.execute("UPDATE users SET role = ? WHERE id = ?", (role.value, user_id))


class SkillRepository:
    """Skill tags keyed by their normalized slug."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def upsert_many(self, names: Iterable[str]) -> list[SkillTag]:
        """Resolve skill names to tags, creating the missing ones.

        ``INSERT ... ON CONFLICT(slug) DO NOTHING`` makes concurrent creation
        of the same tag harmless: whichever writer loses simply reads the
        winner's row.  Names that normalize to the same slug collapse into
        one tag, keeping first-seen order.

        Args:
            names: Free-text skill names.

        Returns:
            One SkillTag per distinct slug, in input order.

        Raises:
            ValueError: If a name is empty after normalization.
        """
        by_slug: dict[str, str] = {}
        for name in names:
            slug = normalize_skill_slug(name)
            by_slug.setdefault(slug, name.strip())

        tags: list[SkillTag] = []
        for slug, name in by_slug.items():
            self._conn.execute(
                "INSERT INTO skill_tags (id, name, slug) VALUES (?, ?, ?) "
                "ON CONFLICT(slug) DO NOTHING",
                (new_id(), name, slug),
            )
            row = self._conn.execute(
                "SELECT id, name, slug FROM skill_tags WHERE slug = ?", (slug,)
            ).fetchone()
            tags.append(SkillTag.model_validate(dict(row)))
        return tags


class ProfileRepository:
    """Consultant profiles and their skill links."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _skills(self, profile_id: str) -> list[str]:
        rows = self._conn.execute(
            """
            SELECT t.slug FROM consultant_skills cs
            JOIN skill_tags t ON t.id = cs.skill_tag_id
            WHERE cs.profile_id = ? ORDER BY t.slug
            """,
            (profile_id,),
        ).fetchall()
        return [row["slug"] for row in rows]

    def _build(self, row: sqlite3.Row) -> ConsultantProfile:
        data = dict(row)
        data["skills"] = self._skills(data["id"])
        return ConsultantProfile.model_validate(data)

    def get(self, profile_id: str) -> ConsultantProfile | None:
        row = self._conn.execute(
            "SELECT * FROM consultant_profiles WHERE id = ?", (profile_id,)
        ).fetchone()
        return self._build(row) if row is not None else None

    def get_by_user(self, user_id: str) -> ConsultantProfile | None:
        row = self._conn.execute(
            "SELECT * FROM consultant_profiles WHERE user_id = ?", (user_id,)
        ).fetchone()
        return self._build(row) if row is not None else None

    def insert(
        self,
        user_id: str,
        *,
        hourly_rate: Decimal,
        currency: str,
        headline: str | None = None,
        bio: str | None = None,
        is_available: bool = True,
        consent_directory: bool = True,
        skill_tags: list[SkillTag] | None = None,
    ) -> ConsultantProfile:
        tags = skill_tags or []
        profile = ConsultantProfile(
            id=new_id(),
            user_id=user_id,
            headline=headline,
            bio=bio,
            hourly_rate=hourly_rate,
            currency=currency,
            is_available=is_available,
            consent_directory=consent_directory,
            skills=sorted(tag.slug for tag in tags),
            created_at=utcnow(),
        )
        self._conn.execute(
            """
            INSERT INTO consultant_profiles (
                id, user_id, headline, bio, hourly_rate, currency,
                is_available, consent_directory, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                profile.id,
                profile.user_id,
                profile.headline,
                profile.bio,
                money_to_db(profile.hourly_rate),
                profile.currency,
                int(profile.is_available),
                int(profile.consent_directory),
                to_db_time(profile.created_at),
            ),
        )
        self._conn.executemany(
            "INSERT INTO consultant_skills (profile_id, skill_tag_id) VALUES (?, ?)",
            [(profile.id, tag.id) for tag in tags],
        )
        return profile

    def update_fields(self, profile_id: str, fields: dict[str, Any]) -> None:
        update_columns(self._conn, "consultant_profiles", profile_id, fields, PROFILE_COLUMNS)

    def set_skills(self, profile_id: str, skill_tags: list[SkillTag]) -> None:
        """Replace the profile's skill links with *skill_tags*."""
        self._conn.execute("DELETE FROM consultant_skills WHERE profile_id = ?", (profile_id,))
        self._conn.executemany(
            "INSERT INTO consultant_skills (profile_id, skill_tag_id) VALUES (?, ?)",
            [(profile_id, tag.id) for tag in skill_tags],
        )

    def search_directory(
        self,
        *,
        skill_slugs: list[str],
        min_rate: Decimal | None = None,
        max_rate: Decimal | None = None,
        is_available: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ConsultantProfile], int]:
        """List directory-listed profiles, newest first.

        A profile matches the skill filter when it holds any of
        *skill_slugs*.  Rates are compared as ``Decimal``.

        Returns:
            The page of profiles and the total number matching the filters.
        """
        conditions = ["p.consent_directory = 1", "p.is_available = ?"]
        params: list[object] = [int(is_available)]
        if skill_slugs:
            placeholders = ", ".join("?" for _ in skill_slugs)
            conditions.append(
                f"""EXISTS (
                    SELECT 1 FROM consultant_skills cs
                    JOIN skill_tags t ON t.id = cs.skill_tag_id
                    WHERE cs.profile_id = p.id AND t.slug IN ({placeholders})
                )"""
            )
            params.extend(skill_slugs)

        rows = self._conn.execute(
            f"SELECT p.* FROM consultant_profiles p WHERE {' AND '.join(conditions)} "
            "ORDER BY p.created_at DESC, p.id DESC",
            params,
        ).fetchall()

        matching = [
            row
            for row in rows
            if (min_rate is None or Decimal(row["hourly_rate"]) >= min_rate)
            and (max_rate is None or Decimal(row["hourly_rate"]) <= max_rate)
        ]
        return [self._build(row) for row in matching[offset : offset + limit]], len(matching)

    def find_candidates(
        self,
        *,
        skill_slugs: list[str],
        max_rate: Decimal | None,
        limit: int = 20,
    ) -> list[ConsultantProfile]:
        """Return available, directory-listed profiles matching a request.

        Args:
            skill_slugs: Required skills; when non-empty, a candidate must
                hold at least one of them.
            max_rate: The request budget; when set, the hourly rate must not
                exceed it.
            limit: Maximum number of candidates.

        Returns:
            Candidate profiles, most skill overlap first.
        """
        params: list[object] = []
        skill_filter = ""
        overlap = "0"
        if skill_slugs:
            placeholders = ", ".join("?" for _ in skill_slugs)
            overlap = f"""(
                SELECT COUNT(*) FROM consultant_skills cs
                JOIN skill_tags t ON t.id = cs.skill_tag_id
                WHERE cs.profile_id = p.id AND t.slug IN ({placeholders})
            )"""
            params.extend(skill_slugs)
            skill_filter = "AND overlap > 0"

        query = f"""
            SELECT * FROM (
                SELECT p.*, {overlap} AS overlap FROM consultant_profiles p
                WHERE p.is_available = 1 AND p.consent_directory = 1
            ) WHERE 1 = 1 {skill_filter}
            ORDER BY overlap DESC, created_at ASC
        """
        rows = self._conn.execute(query, params).fetchall()

        candidates: list[ConsultantProfile] = []
        for row in rows:
            data = dict(row)
            data.pop("overlap", None)
            if max_rate is not None and Decimal(data["hourly_rate"]) > max_rate:
                continue
            data["skills"] = self._skills(data["id"])
            candidates.append(ConsultantProfile.model_validate(data))
            if len(candidates) >= limit:
                break
        return candidates
