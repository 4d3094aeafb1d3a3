"""File-backed profile store.

The whole document is rewritten on every mutation through a temporary file in
the same directory followed by ``os.replace``, so readers never observe a
partially written file. At most one profile is active at any time and the
``activeProfile`` pointer always agrees with the per-profile ``isActive`` flags.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError

from aws_account_mcp.aws_credentials.models import CredentialSet
from aws_account_mcp.errors import ProfileError
from aws_account_mcp.profiles.models import Environment, Profile, ProfileDocument
from aws_account_mcp.utils.time import utc_now_iso

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {
        "access_key_id",
        "secret_access_key",
        "region",
        "session_token",
        "environment",
        "description",
        "alias",
    }
)

ProfileListener = Callable[[str], None]


class ProfileStore:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.RLock()
        self._listeners: list[ProfileListener] = []
        self._document = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def subscribe(self, listener: ProfileListener) -> None:
        """Call ``listener(profile_name)`` after every mutation."""
        self._listeners.append(listener)

    def reload(self) -> None:
        with self._lock:
            self._document = self._load()

    # -- queries -----------------------------------------------------------

    def has_profiles(self) -> bool:
        return bool(self._document.profiles)

    def list_profiles(self) -> list[Profile]:
        return list(self._document.profiles.values())

    def get(self, name: str) -> Profile | None:
        return self._document.profiles.get(name)

    def get_active(self) -> Profile | None:
        active = self._document.active_profile
        return self._document.profiles.get(active) if active else None

    def get_credentials(self, name: str | None = None) -> CredentialSet:
        if name:
            profile = self._require(name, "getCredentials")
        else:
            profile = self.get_active()
            if profile is None:
                if not self.has_profiles():
                    raise ProfileError(
                        "No AWS profile configured. Create one with the aws-manage-profiles "
                        "tool (operation \"create\").",
                        operation="getCredentials",
                    )
                raise ProfileError(
                    "No active profile set. Use the aws-manage-profiles tool "
                    "(operation \"set-active\") to activate one.",
                    operation="getCredentials",
                )
        if not profile.access_key_id or not profile.secret_access_key:
            raise ProfileError(
                f"Profile '{profile.name}' is missing access keys", operation="getCredentials"
            )
        return CredentialSet(
            access_key_id=profile.access_key_id,
            secret_access_key=profile.secret_access_key,
            session_token=profile.session_token,
        )

    # -- mutations ---------------------------------------------------------

    def create(
        self,
        name: str,
        *,
        access_key_id: str,
        secret_access_key: str,
        region: str,
        environment: Environment,
        session_token: str | None = None,
        description: str | None = None,
    ) -> Profile:
        with self._lock:
            snapshot = self._snapshot()
            if name in self._document.profiles:
                raise ProfileError(f"Profile '{name}' already exists", operation="create")
            try:
                profile = Profile(
                    name=name,
                    access_key_id=access_key_id,
                    secret_access_key=secret_access_key,
                    region=region,
                    environment=environment,
                    session_token=session_token,
                    description=description,
                )
            except ValidationError as exc:
                raise ProfileError(f"Invalid profile: {exc}", operation="create") from exc
            self._document.profiles[name] = profile
            if self._document.active_profile is None:
                self._activate(name)
            self._commit(name, snapshot)
            logger.info("Created profile %s", name)
            return profile

    def update(self, name: str, /, **changes: object) -> Profile:
        with self._lock:
            snapshot = self._snapshot()
            current = self._require(name, "update")
            unknown = set(changes) - _UPDATABLE_FIELDS
            if unknown:
                raise ProfileError(
                    f"Cannot update field(s): {', '.join(sorted(unknown))}", operation="update"
                )
            data = current.model_dump()
            data.update({key: value for key, value in changes.items() if value is not None})
            data["updated_at"] = utc_now_iso()
            try:
                updated = Profile.model_validate(data)
            except ValidationError as exc:
                raise ProfileError(f"Invalid profile: {exc}", operation="update") from exc
            self._document.profiles[name] = updated
            self._commit(name, snapshot)
            logger.info("Updated profile %s", name)
            return updated

    def delete(self, name: str) -> None:
        with self._lock:
            snapshot = self._snapshot()
            self._require(name, "delete")
            del self._document.profiles[name]
            if self._document.active_profile == name:
                self._document.active_profile = None
                remaining = next(iter(self._document.profiles), None)
                if remaining is not None:
                    self._activate(remaining)
            self._commit(name, snapshot)
            logger.info("Deleted profile %s", name)

    def set_active(self, name: str) -> Profile:
        with self._lock:
            snapshot = self._snapshot()
            self._require(name, "setActive")
            self._activate(name)
            self._commit(name, snapshot)
            logger.info("Active profile set to %s", name)
            return self._document.profiles[name]

    def update_account_info(
        self, name: str, account_id: str, alias: str | None = None
    ) -> Profile:
        with self._lock:
            snapshot = self._snapshot()
            profile = self._require(name, "updateAccountInfo")
            changes: dict[str, object] = {"account_id": account_id, "updated_at": utc_now_iso()}
            if alias:
                changes["alias"] = alias
            updated = profile.model_copy(update=changes)
            self._document.profiles[name] = updated
            self._commit(name, snapshot)
            return updated

    # -- internals ---------------------------------------------------------

    def _require(self, name: str, operation: str) -> Profile:
        profile = self._document.profiles.get(name)
        if profile is None:
            available = ", ".join(self._document.profiles) or "none"
            raise ProfileError(
                f"Profile '{name}' not found. Available profiles: {available}",
                operation=operation,
            )
        return profile

    def _activate(self, name: str) -> None:
        for profile_name, profile in self._document.profiles.items():
            profile.is_active = profile_name == name
        self._document.active_profile = name

    def _snapshot(self) -> ProfileDocument:
        return self._document.model_copy(deep=True)

    def _commit(self, name: str, snapshot: ProfileDocument) -> None:
        self._document.last_modified = utc_now_iso()
        try:
            self._save()
        except Exception:
            # Keep memory in step with what is on disk.
            self._document = snapshot
            raise
        for listener in self._listeners:
            listener(name)

    def _load(self) -> ProfileDocument:
        if not self._path.exists():
            return ProfileDocument()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            document = ProfileDocument.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.error("Failed to load profiles from %s: %s", self._path, exc)
            return ProfileDocument()

        active = document.active_profile
        if active not in document.profiles:
            active = next(iter(document.profiles), None)
            if active is not None:
                logger.warning("Active profile pointer missing or stale; activating %s", active)
        for profile_name, profile in document.profiles.items():
            profile.is_active = profile_name == active
        document.active_profile = active
        return document

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": self._document.version,
            "activeProfile": self._document.active_profile,
            "profiles": {
                name: profile.to_record() for name, profile in self._document.profiles.items()
            },
            "lastModified": self._document.last_modified,
        }
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self._path.parent), prefix=".profiles-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
