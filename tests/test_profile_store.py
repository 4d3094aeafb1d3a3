from __future__ import annotations

import json
import random

import pytest

from aws_account_mcp.errors import ProfileError
from aws_account_mcp.profiles import ProfileStore


def _create(store: ProfileStore, name: str, **overrides):
    fields = {
        "access_key_id": f"AKIA{name.upper():0<12}",
        "secret_access_key": f"secret-{name}",
        "region": "us-east-1",
        "environment": "dev",
    }
    fields.update(overrides)
    return store.create(name, **fields)


def _assert_single_active(store: ProfileStore) -> None:
    active = [profile.name for profile in store.list_profiles() if profile.is_active]
    if store.list_profiles():
        assert len(active) == 1
        assert store.get_active() is not None
        assert store.get_active().name == active[0]
    else:
        assert active == []
        assert store.get_active() is None


@pytest.fixture
def store(tmp_path) -> ProfileStore:
    return ProfileStore(tmp_path / "profiles.json")


def test_first_profile_is_activated_and_delete_promotes_next(store: ProfileStore) -> None:
    p1 = _create(store, "p1")
    assert p1.is_active is True
    assert store.get_active().name == "p1"

    p2 = _create(store, "p2")
    assert p2.is_active is False
    assert store.get_active().name == "p1"

    store.delete("p1")
    assert store.get_active().name == "p2"
    assert store.get("p2").is_active is True


def test_random_operation_sequences_keep_one_active_profile(tmp_path) -> None:
    rng = random.Random(7)
    store = ProfileStore(tmp_path / "profiles.json")
    names = ["a", "b", "c", "d"]

    for _ in range(200):
        name = rng.choice(names)
        operation = rng.choice(["create", "update", "delete", "set-active"])
        try:
            if operation == "create":
                _create(store, name)
            elif operation == "update":
                store.update(name, region=rng.choice(["us-east-1", "eu-west-1"]))
            elif operation == "delete":
                store.delete(name)
            else:
                store.set_active(name)
        except ProfileError:
            pass
        _assert_single_active(store)


def test_profile_survives_reload(tmp_path) -> None:
    path = tmp_path / "nested" / "profiles.json"
    created = _create(
        ProfileStore(path),
        "ci",
        region="eu-west-1",
        environment="staging",
        session_token="session-token",
        description="CI account",
    )

    reloaded = ProfileStore(path).get("ci")

    assert reloaded is not None
    assert reloaded.model_dump(exclude={"updated_at"}) == created.model_dump(exclude={"updated_at"})


def test_file_layout_uses_camel_case_and_private_mode(store: ProfileStore) -> None:
    _create(store, "ci")

    raw = json.loads(store.path.read_text(encoding="utf-8"))

    assert raw["activeProfile"] == "ci"
    assert raw["version"] == "1.0.0"
    assert raw["profiles"]["ci"]["accessKeyId"].startswith("AKIA")
    assert raw["profiles"]["ci"]["isActive"] is True
    assert store.path.stat().st_mode & 0o777 == 0o600
    assert not list(store.path.parent.glob(".profiles-*.tmp"))


def test_duplicate_create_rejected(store: ProfileStore) -> None:
    _create(store, "ci")

    with pytest.raises(ProfileError, match="already exists"):
        _create(store, "ci")


def test_invalid_environment_rejected(store: ProfileStore) -> None:
    with pytest.raises(ProfileError, match="Invalid profile"):
        _create(store, "ci", environment="qa")


def test_update_rejects_unknown_fields(store: ProfileStore) -> None:
    _create(store, "ci")

    with pytest.raises(ProfileError, match="Cannot update field"):
        store.update("ci", name="renamed")


def test_update_keeps_unset_fields(store: ProfileStore) -> None:
    _create(store, "ci", description="keep me")

    updated = store.update("ci", region="ap-northeast-1", description=None)

    assert updated.region == "ap-northeast-1"
    assert updated.description == "keep me"


def test_missing_profile_error_lists_available(store: ProfileStore) -> None:
    _create(store, "ci")

    with pytest.raises(ProfileError, match="Available profiles: ci"):
        store.set_active("prod")


def test_get_credentials_without_profiles_explains_setup(store: ProfileStore) -> None:
    with pytest.raises(ProfileError, match="No AWS profile configured"):
        store.get_credentials()


def test_get_credentials_uses_active_profile(store: ProfileStore) -> None:
    _create(store, "ci", session_token="tok")

    credentials = store.get_credentials()

    assert credentials.secret_access_key == "secret-ci"
    assert credentials.session_token == "tok"


def test_corrupt_file_loads_empty(tmp_path) -> None:
    path = tmp_path / "profiles.json"
    path.write_text("{not json", encoding="utf-8")

    assert ProfileStore(path).list_profiles() == []


def test_dangling_active_pointer_promotes_first_profile(tmp_path) -> None:
    path = tmp_path / "profiles.json"
    store = ProfileStore(path)
    _create(store, "ci")
    raw = json.loads(path.read_text(encoding="utf-8"))
    raw["activeProfile"] = "gone"
    path.write_text(json.dumps(raw), encoding="utf-8")

    reloaded = ProfileStore(path)

    assert reloaded.get_active().name == "ci"
    assert reloaded.get("ci").is_active is True
    _assert_single_active(reloaded)


def test_missing_active_pointer_promotes_first_profile(tmp_path) -> None:
    path = tmp_path / "profiles.json"
    store = ProfileStore(path)
    _create(store, "ci")
    _create(store, "prod")
    raw = json.loads(path.read_text(encoding="utf-8"))
    raw.pop("activeProfile")
    path.write_text(json.dumps(raw), encoding="utf-8")

    reloaded = ProfileStore(path)

    assert reloaded.get_active().name == "ci"
    _assert_single_active(reloaded)


def test_failed_write_leaves_create_retryable(store: ProfileStore, monkeypatch) -> None:
    def _disk_full(*args, **kwargs):
        raise OSError("No space left on device")

    monkeypatch.setattr(store, "_save", _disk_full)
    with pytest.raises(OSError):
        _create(store, "ci")

    assert store.get("ci") is None
    assert store.get_active() is None

    monkeypatch.undo()
    assert _create(store, "ci").is_active is True


def test_failed_write_leaves_delete_undone(store: ProfileStore, monkeypatch) -> None:
    _create(store, "ci")
    _create(store, "prod")

    monkeypatch.setattr("aws_account_mcp.profiles.store.os.replace", _raise_oserror)
    with pytest.raises(OSError):
        store.delete("ci")

    assert store.get("ci") is not None
    assert store.get_active().name == "ci"
    _assert_single_active(store)
    assert list(store.path.parent.glob(".profiles-*.tmp")) == []


def _raise_oserror(*args, **kwargs):
    raise OSError("read-only file system")


def test_listeners_receive_mutated_profile_name(store: ProfileStore) -> None:
    seen: list[str] = []
    store.subscribe(seen.append)

    _create(store, "ci")
    store.update("ci", region="eu-west-1")
    store.update_account_info("ci", "123456789012", alias="main")
    store.delete("ci")

    assert seen == ["ci", "ci", "ci", "ci"]


def test_summary_hides_secrets(store: ProfileStore) -> None:
    profile = _create(store, "ci", session_token="tok")

    summary = profile.summary()

    assert "secretAccessKey" not in summary
    assert summary["hasSessionToken"] is True
    assert "***" in str(summary["accessKeyId"])
