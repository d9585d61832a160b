import itertools

import pytest

from secscan.errors import PolicyValidationError, SecScanError
from secscan.policy import Policy, PolicyStore, evaluate_policy
from secscan.result import SeverityCounts

LEVELS = ("critical", "high", "medium", "low")


def test_single_critical_fails_strict_policy_but_highs_pass():
    policy = Policy(fail_on_severity="critical", max_critical=0)

    assert evaluate_policy(SeverityCounts(critical=1), policy) is False
    assert evaluate_policy(SeverityCounts(high=3), policy) is True


def test_fail_on_high_rejects_any_high_within_ceiling():
    policy = Policy(fail_on_severity="high", max_high=5)

    assert evaluate_policy(SeverityCounts(high=1), policy) is False
    assert evaluate_policy(SeverityCounts(medium=20, low=50), policy) is True


def test_ceilings_are_checked_before_fail_on_level():
    policy = Policy(fail_on_severity="medium", max_critical=1, max_high=5)

    assert evaluate_policy(SeverityCounts(high=6), policy) is False
    assert evaluate_policy(SeverityCounts(critical=1), policy) is False
    assert evaluate_policy(SeverityCounts(low=500), policy) is True


def test_low_ceiling_applies_when_failing_on_low():
    policy = Policy(fail_on_severity="low", max_low=50)

    assert evaluate_policy(SeverityCounts(high=5, medium=20, low=50), policy) is True
    assert evaluate_policy(SeverityCounts(low=51), policy) is False


def test_fail_on_critical_ignores_lower_ceilings():
    policy = Policy(fail_on_severity="critical", max_high=0)

    assert evaluate_policy(SeverityCounts(high=10, medium=100), policy) is True


@pytest.mark.parametrize("fail_on", LEVELS)
def test_adding_findings_never_turns_failure_into_pass(fail_on):
    policy = Policy(fail_on_severity=fail_on, max_critical=1, max_high=1, max_medium=1, max_low=1)

    for values in itertools.product(range(3), repeat=4):
        counts = SeverityCounts(*values)
        if evaluate_policy(counts, policy):
            continue
        for level in LEVELS:
            worse = SeverityCounts(*values)
            setattr(worse, level, getattr(worse, level) + 1)
            assert evaluate_policy(worse, policy) is False, (values, level)


def test_from_dict_merges_over_defaults_and_accepts_legacy_keys():
    policy = Policy.from_dict({"failOn": "HIGH", "blockPipeline": False, "maxLow": 3})

    assert policy.fail_on_severity == "high"
    assert policy.block_on_failure is False
    assert policy.max_low == 3
    assert policy.max_high == 5


@pytest.mark.parametrize(
    "update",
    [
        {"failOnSeverity": "extreme"},
        {"maxHigh": -1},
        {"maxCritical": "two"},
        {"maxMedium": True},
        {"blockOnFailure": "yes"},
    ],
)
def test_invalid_policy_is_rejected_and_previous_kept(update):
    store = PolicyStore()
    store.save({"failOnSeverity": "high"})

    with pytest.raises(PolicyValidationError) as excinfo:
        store.save(update)

    assert isinstance(excinfo.value, SecScanError)
    assert excinfo.value.errors
    assert store.policy.fail_on_severity == "high"


def test_policy_round_trips_through_yaml(tmp_path):
    path = tmp_path / "policy.yaml"
    store = PolicyStore(path)

    saved = store.save({"failOnSeverity": "medium", "maxMedium": 2, "notifyOnFailure": False})

    assert path.exists()
    assert PolicyStore(path).policy == saved
    assert saved.to_dict()["maxMedium"] == 2


def test_unreadable_policy_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text("- not\n- a mapping\n", encoding="utf-8")

    assert PolicyStore(path).policy == Policy()


def test_restore_defaults_persists(tmp_path):
    path = tmp_path / "policy.yaml"
    store = PolicyStore(path)
    store.save({"maxHigh": 0})

    assert store.restore_defaults() == Policy()
    assert PolicyStore(path).policy == Policy()
