import threading

import pytest

from hostspecializer.errors import SpecializationError
from hostspecializer.models import (
    AssignmentContext,
    AssignmentSlot,
    ClaimResult,
    DeploymentPolicy,
    IdentityContext,
    SpecializerSettings,
)


def make_context(**overrides):
    values = {
        "site_id": 1,
        "site_name": "orders",
        "environment": {"FOO": "bar"},
        "package_url": "https://example.com/app.zip",
    }
    values.update(overrides)
    return AssignmentContext(**values)


def test_contexts_compare_structurally():
    assert make_context() == make_context()
    assert make_context() != make_context(environment={"FOO": "baz"})
    assert make_context() != make_context(package_url=None)
    assert make_context(identity=IdentityContext(secret="a")) != make_context(identity=IdentityContext(secret="b"))


def test_context_is_immutable_and_hashable():
    context = make_context()

    with pytest.raises(AttributeError):
        context.site_name = "other"
    assert hash(context) == hash(make_context())


def test_from_dict_builds_context():
    context = AssignmentContext.from_dict(
        {
            "site_id": "12",
            "site_name": "orders",
            "environment": {"FOO": "bar", "COUNT": 3},
            "identity": {"secret": "s", "identities": ["system"]},
        }
    )

    assert context.site_id == 12
    assert context.environment == {"FOO": "bar", "COUNT": "3"}
    assert context.identity == IdentityContext(secret="s", identities=("system",))


def test_from_dict_falls_back_to_run_from_package_setting():
    context = AssignmentContext.from_dict(
        {
            "site_id": 1,
            "environment": {"WEBSITE_RUN_FROM_PACKAGE": "https://storage.example.com/app.zip?sig=x"},
        }
    )

    assert context.package_url == "https://storage.example.com/app.zip?sig=x"


def test_from_dict_ignores_local_run_from_package_flag():
    context = AssignmentContext.from_dict({"site_id": 1, "environment": {"WEBSITE_RUN_FROM_PACKAGE": "1"}})

    assert context.package_url is None


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"site_name": "x"}, "missing 'site_id'"),
        ({"site_id": "abc"}, "Invalid site_id"),
        ({"site_id": 1, "environment": ["FOO"]}, "'environment' must be a mapping"),
    ],
)
def test_from_dict_rejects_malformed_payloads(payload, message):
    with pytest.raises(SpecializationError, match=message):
        AssignmentContext.from_dict(payload)


def test_identity_endpoint_requires_identity_context():
    environment = {"MSI_ENDPOINT": "http://127.0.0.1:8081/msi"}

    assert make_context(environment=environment).identity_endpoint() is None
    assert (
        make_context(environment=environment, identity=IdentityContext()).identity_endpoint()
        == "http://127.0.0.1:8081/msi"
    )


def test_slot_claims_once_then_compares():
    slot = AssignmentSlot()
    first = make_context()

    assert slot.claim(first) is ClaimResult.CLAIMED
    assert slot.claim(make_context()) is ClaimResult.MATCHED
    assert slot.claim(make_context(site_name="other")) is ClaimResult.CONFLICT
    assert slot.context is first


def test_slot_reset_empties_slot():
    slot = AssignmentSlot()
    slot.claim(make_context())

    slot.reset()

    assert slot.context is None
    assert slot.claim(make_context(site_name="other")) is ClaimResult.CLAIMED


def test_slot_has_single_winner_under_contention():
    slot = AssignmentSlot()
    barrier = threading.Barrier(16)
    results = []
    lock = threading.Lock()

    def claim(index):
        barrier.wait()
        outcome = slot.claim(make_context(site_id=index))
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=claim, args=(index,)) for index in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(ClaimResult.CLAIMED) == 1
    assert results.count(ClaimResult.CONFLICT) == 15


class StubEnvironment:
    def __init__(self, disabled, enabled):
        self.disabled = disabled
        self.enabled = enabled

    def is_mount_disabled(self):
        return self.disabled

    def is_mount_enabled(self):
        return self.enabled


def test_deployment_policy_reads_environment():
    policy = DeploymentPolicy.from_environment(StubEnvironment(disabled=True, enabled=False))

    assert policy == DeploymentPolicy(mount_disabled=True, mount_enabled=False)


def test_settings_from_mapping_ignores_unknown_and_none_values():
    settings = SpecializerSettings.from_mapping(
        {"script_root": "/srv", "temp_dir": None, "verbose": True, "download_retries": 5}
    )

    assert settings.script_root == "/srv"
    assert settings.download_retries == 5
    assert settings.temp_dir


def test_claimed_context_environment_cannot_change_afterwards():
    source = {"FOO": "bar"}
    context = make_context(environment=source)
    slot = AssignmentSlot()
    slot.claim(context)

    source["FOO"] = "changed"
    with pytest.raises(TypeError):
        context.environment["FOO"] = "changed"

    assert slot.context.environment == {"FOO": "bar"}
    assert slot.claim(make_context(environment={"FOO": "bar"})) is ClaimResult.MATCHED


@pytest.mark.parametrize(
    "key, value",
    [
        ("SCM_RUN_FROM_PACKAGE", "https://storage.example.com/scm.zip"),
        ("WEBSITE_RUN_FROM_PACKAGE", "HTTPS://storage.example.com/app.zip"),
    ],
)
def test_from_dict_accepts_any_http_run_from_package_url(key, value):
    context = AssignmentContext.from_dict({"site_id": 1, "environment": {key: value}})

    assert context.package_url == value
