import pytest

from taskverse.analysis import DEFAULT_MOTIVATIONAL_TIP, SimulatedPrioritizer
from taskverse.tasks import fetch_stubbed_tasks


@pytest.mark.asyncio
async def test_prioritizer_returns_tip_without_reordering():
    tasks = list(reversed(fetch_stubbed_tasks()))

    result = await SimulatedPrioritizer(latency_seconds=0).prioritize(tasks)

    assert result.motivational_tip == DEFAULT_MOTIVATIONAL_TIP
    assert [t.id for t in result.prioritized_tasks] == ["5", "4", "3", "2", "1"]


@pytest.mark.asyncio
async def test_custom_tip_is_serialized():
    result = await SimulatedPrioritizer(tip="Ship it.", latency_seconds=0).prioritize(fetch_stubbed_tasks(limit=1))

    payload = result.to_api_dict()
    assert payload["motivationalTip"] == "Ship it."
    assert payload["prioritizedTasks"][0]["id"] == "1"
    assert payload["prioritizedTasks"][0]["blockchainVerified"] is False
