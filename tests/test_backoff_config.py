from __future__ import annotations

import pytest

from hypernodes.backoff import BackoffPolicy, BackoffState
from hypernodes.config import ClientConfig
from hypernodes.types import KeyData, RunGraphRequest, RunGraphResponse


def test_backoff_state_grows_caps_and_resets() -> None:
    state = BackoffState(BackoffPolicy(floor_s=1.0, ceiling_s=3.0, multiplier=2.0))

    assert [state.advance() for _ in range(4)] == [1.0, 2.0, 3.0, 3.0]
    assert state.failures == 4

    state.reset()

    assert state.current_s == 1.0
    assert state.failures == 0


def test_default_policy_matches_service_expectations() -> None:
    policy = BackoffPolicy()

    assert (policy.floor_s, policy.ceiling_s, policy.multiplier) == (0.5, 60.0, 1.5)
    assert policy.delay_for(1) == 0.5
    assert policy.delay_for(3) == pytest.approx(1.125)
    assert policy.delay_for(50) == 60.0
    with pytest.raises(ValueError):
        policy.delay_for(0)


@pytest.mark.parametrize(
    "kwargs",
    [{"floor_s": 0}, {"floor_s": 5.0, "ceiling_s": 1.0}, {"multiplier": 0.5}],
)
def test_backoff_policy_validation(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        BackoffPolicy(**kwargs)


def test_config_from_env_reads_overrides() -> None:
    config = ClientConfig.from_env(
        {
            "HYPERNODES_BASE_URL": "https://localhost:7032/",
            "HYPERNODES_TIMEOUT_S": "5",
            "HYPERNODES_POLL_TIMEOUT_S": "",
        }
    )

    assert config.base_url == "https://localhost:7032"
    assert config.timeout_s == 5.0
    assert config.poll_timeout_s == 120.0
    assert config.url_for("/rungraph") == "https://localhost:7032/rungraph"


def test_config_rejects_bad_values() -> None:
    with pytest.raises(ValueError, match="HYPERNODES_TIMEOUT_S"):
        ClientConfig.from_env({"HYPERNODES_TIMEOUT_S": "soon"})
    with pytest.raises(ValueError):
        ClientConfig(base_url="")
    with pytest.raises(ValueError):
        ClientConfig(timeout_s=0)


def test_wire_models_use_service_field_names() -> None:
    request = RunGraphRequest(graph_name="g", graph_user_name="u", polling_guid="p")
    assert set(request.model_dump(by_alias=True)) == {
        "GraphName",
        "GraphUserName",
        "FundingKey",
        "InputData",
        "PollingGuid",
    }

    key = KeyData.model_validate({"key": "k", "tokenCount": 12, "username": "me", "paymentLink": "https://pay"})
    assert (key.token_count, key.payment_link) == (12, "https://pay")

    assert RunGraphResponse().first_line() == ""
    assert RunGraphResponse(response=["a", "b"]).first_line() == "a"
