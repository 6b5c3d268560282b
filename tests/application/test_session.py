from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from mnemos.application.scheduler import Scheduler
from mnemos.application.session import StudyService
from mnemos.domain.errors import InvalidInput, SchedulingError
from mnemos.domain.models import CardState, Quality, SessionSettings

AS_OF = date(2026, 3, 10)
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def cards(make_card):
    return [
        make_card("new-1"),
        make_card(
            "review-1",
            state=CardState.REVIEW,
            interval=4,
            repetitions=2,
            due_date=date(2026, 3, 8),
        ),
    ]


@pytest.fixture
def mock_repo(cards):
    repo = AsyncMock()
    repo.load_cards.return_value = cards
    repo.load_settings.return_value = SessionSettings()
    by_id = {c.id: c for c in cards}

    async def save(card_id, state):
        return by_id[card_id].with_scheduling(state)

    repo.save_scheduling.side_effect = save
    return repo


@pytest.fixture
def service(mock_repo):
    return StudyService(mock_repo, Scheduler(SessionSettings(), fuzz=False))


@pytest.mark.asyncio
async def test_start_session_orders_queue(service):
    session = await service.start_session(AS_OF)

    assert [c.id for c in session.queue] == ["review-1", "new-1"]
    assert session.current.id == "review-1"
    assert not session.is_complete
    assert session.remaining == 2


@pytest.mark.asyncio
async def test_rate_persists_and_advances(service, mock_repo):
    session = await service.start_session(AS_OF)

    state = await service.rate(session, Quality.GOOD, NOW)

    assert state.state is CardState.REVIEW
    assert state.interval == 10
    mock_repo.save_scheduling.assert_awaited_once_with("review-1", state)
    assert session.current_index == 1
    assert session.reviewed == 1
    assert session.correct == 1


@pytest.mark.asyncio
async def test_again_requeues_card_at_end(service):
    session = await service.start_session(AS_OF)

    await service.rate(session, Quality.AGAIN, NOW)

    assert len(session.queue) == 3
    assert session.queue[-1].id == "review-1"
    assert session.queue[-1].scheduling.state is CardState.LEARNING
    assert session.requeued == ["review-1"]
    assert session.correct == 0


@pytest.mark.asyncio
async def test_session_runs_to_completion(service):
    session = await service.start_session(AS_OF)

    await service.rate(session, 0, NOW)  # review-1 lapses and comes back
    await service.rate(session, 3, NOW)  # new-1 graduates
    await service.rate(session, 2, NOW)  # requeued review-1 advances a step

    assert session.is_complete
    assert session.current is None
    assert session.reviewed == 3
    assert session.correct == 2


@pytest.mark.asyncio
async def test_invalid_quality_leaves_session_untouched(service, mock_repo):
    session = await service.start_session(AS_OF)

    with pytest.raises(InvalidInput):
        await service.rate(session, 7, NOW)

    mock_repo.save_scheduling.assert_not_awaited()
    assert session.current_index == 0
    assert session.reviewed == 0


@pytest.mark.asyncio
async def test_rating_a_finished_session_fails(mock_repo, service):
    mock_repo.load_cards.return_value = []
    session = await service.start_session(AS_OF)

    assert session.is_complete
    with pytest.raises(SchedulingError):
        await service.rate(session, Quality.GOOD, NOW)


@pytest.mark.asyncio
async def test_estimates_for_current_card(service):
    session = await service.start_session(AS_OF)
    estimates = await service.estimates(session, NOW)

    assert estimates[Quality.AGAIN] == "< 1d"
    assert estimates[Quality.GOOD] == "10d"


@pytest.mark.asyncio
async def test_finish_refreshes_cached_stats(service, mock_repo):
    session = await service.start_session(AS_OF)
    stats = await service.finish(session, AS_OF)

    assert stats.total == 2
    mock_repo.save_stats.assert_awaited_once_with(stats)


@pytest.mark.asyncio
async def test_scheduler_built_from_repository_settings(mock_repo):
    mock_repo.load_settings.return_value = SessionSettings(new_cards_per_day=0)
    service = StudyService(mock_repo)

    session = await service.start_session(AS_OF)

    assert [c.id for c in session.queue] == ["review-1"]
    assert session.deferred_new == 1
