from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from lexicon.core import definition_updater
from lexicon.core.definition_updater import UpdateConfig, select_candidates, update_definitions
from lexicon.core.errors import DefinitionLookupError, UnknownProviderError
from lexicon.models import (
    LOOKUP_ERROR,
    LOOKUP_NOT_FOUND,
    LOOKUP_PENDING,
    LOOKUP_SUCCESS,
    SOURCE_API,
    SOURCE_MANUAL,
    Entry,
)

from conftest import FakeProvider


def run(db, provider, **cfg):
    cfg.setdefault("rate_limit_ms", 0)
    return asyncio.run(update_definitions(db, UpdateConfig(**cfg), provider=provider))


def days_ago(n: float) -> datetime:
    return datetime.utcnow() - timedelta(days=n)


def test_new_entries_get_one_lookup_each(db, make_entry):
    a = make_entry(name="alpha")
    b = make_entry(name="beta", api_lookup_status=LOOKUP_PENDING)
    provider = FakeProvider({"alpha": "First letter.", "beta": "Second letter."})

    result = run(db, provider, max_requests=10)

    assert provider.calls == ["alpha", "beta"]
    assert result.total_processed == 2
    assert result.successful_updates == 2
    assert result.failures == 0
    db.refresh(a)
    assert a.definition == "First letter."
    assert a.definition_source == SOURCE_API
    assert a.api_provider == "fake"
    assert a.api_lookup_status == LOOKUP_SUCCESS
    assert a.api_lookup_attempted_at is not None


def test_request_cap_leaves_remaining_entries_pending(db, make_entry):
    first = make_entry(name="one")
    second = make_entry(name="two")
    third = make_entry(name="three")
    provider = FakeProvider()

    result = run(db, provider, max_requests=2)

    assert len(provider.calls) == 2
    assert provider.calls == ["one", "two"]
    assert result.total_processed == 2
    db.refresh(third)
    assert third.api_lookup_status is None
    assert third.definition is None

    # next run picks up the leftover
    provider = FakeProvider()
    run(db, provider, max_requests=2)
    assert provider.calls == ["three"]
    for e in (first, second, third):
        db.refresh(e)
        assert e.api_lookup_status == LOOKUP_SUCCESS


@pytest.mark.parametrize("cap", [0, -1])
def test_non_positive_cap_makes_no_calls(db, make_entry, cap):
    make_entry(name="idle")
    provider = FakeProvider()

    result = run(db, provider, max_requests=cap)

    assert provider.calls == []
    assert result.total_processed == 0


def test_not_found_is_not_an_error(db, make_entry):
    e = make_entry(name="zzxq")
    provider = FakeProvider({"zzxq": None})

    result = run(db, provider, max_requests=5)

    assert result.not_found == 1
    assert result.failures == 0
    assert result.errors == []
    db.refresh(e)
    assert e.api_lookup_status == LOOKUP_NOT_FOUND
    assert e.api_lookup_error is None
    assert e.definition is None


def test_errors_are_recorded_and_processing_continues(db, make_entry):
    bad = make_entry(name="broken", slug="broken")
    good = make_entry(name="fine")
    provider = FakeProvider({"broken": DefinitionLookupError("status 503")})

    result = run(db, provider, max_requests=5)

    assert provider.calls == ["broken", "fine"]
    assert result.failures == 1
    assert result.successful_updates == 1
    assert len(result.errors) == 1
    assert result.errors[0].slug == "broken"
    assert result.errors[0].term == "broken"
    assert result.errors[0].error == "status 503"
    db.refresh(bad)
    db.refresh(good)
    assert bad.api_lookup_status == LOOKUP_ERROR
    assert bad.api_lookup_error == "status 503"
    assert good.api_lookup_status == LOOKUP_SUCCESS


def test_failing_error_status_write_does_not_stop_the_run(db, make_entry, monkeypatch):
    bad = make_entry(name="broken")
    good = make_entry(name="fine")
    real_commit = db.commit
    commits = {"n": 0}

    def flaky_commit():
        commits["n"] += 1
        if commits["n"] == 1:
            raise OperationalError("UPDATE entries", {}, Exception("database is locked"))
        return real_commit()

    monkeypatch.setattr(db, "commit", flaky_commit)
    provider = FakeProvider({"broken": DefinitionLookupError("status 503")})

    result = run(db, provider, max_requests=5)

    assert provider.calls == ["broken", "fine"]
    assert result.total_processed == 2
    assert result.failures == 1
    assert result.successful_updates == 1
    assert result.errors[0].slug == bad.slug
    db.refresh(bad)
    db.refresh(good)
    # the error status never landed, so the word is still due next run
    assert bad.api_lookup_status is None
    assert good.api_lookup_status == LOOKUP_SUCCESS


def test_not_found_retry_window(db, make_entry):
    recent = make_entry(name="recent", api_lookup_status=LOOKUP_NOT_FOUND, api_lookup_attempted_at=days_ago(89))
    stale = make_entry(name="stale", api_lookup_status=LOOKUP_NOT_FOUND, api_lookup_attempted_at=days_ago(91))

    candidates = select_candidates(db, UpdateConfig(max_requests=10))

    assert [c.id for c in candidates] == [stale.id]
    assert recent.id not in [c.id for c in candidates]


def test_error_retry_window(db, make_entry):
    recent = make_entry(name="recent", api_lookup_status=LOOKUP_ERROR, api_lookup_attempted_at=days_ago(6))
    stale = make_entry(name="stale", api_lookup_status=LOOKUP_ERROR, api_lookup_attempted_at=days_ago(8))

    candidates = select_candidates(db, UpdateConfig(max_requests=10))

    assert [c.id for c in candidates] == [stale.id]
    assert recent.id not in [c.id for c in candidates]


def test_custom_retry_windows(db, make_entry):
    make_entry(name="nf", api_lookup_status=LOOKUP_NOT_FOUND, api_lookup_attempted_at=days_ago(10))
    make_entry(name="err", api_lookup_status=LOOKUP_ERROR, api_lookup_attempted_at=days_ago(2))

    cfg = UpdateConfig(max_requests=10, retry_not_found_days=5, retry_error_days=1)
    names = [c.name for c in select_candidates(db, cfg)]

    assert names == ["nf", "err"]


def test_entry_just_failed_is_not_retried_by_next_run(db, make_entry):
    make_entry(name="flaky")
    run(db, FakeProvider({"flaky": RuntimeError("timeout")}), max_requests=5)

    provider = FakeProvider()
    result = run(db, provider, max_requests=5)

    assert provider.calls == []
    assert result.total_processed == 0


def test_manual_definitions_and_other_types_are_skipped(db, make_entry):
    make_entry(name="manual", definition="Typed by hand.", definition_source=SOURCE_MANUAL)
    make_entry(name="sourced-manual-blank", definition=None, definition_source=SOURCE_MANUAL)
    make_entry(name="has-def", definition="Already here.")
    make_entry(type="phrase", body="break a leg")
    make_entry(type="quote", body="to be", author="Shakespeare")
    wanted = make_entry(name="wanted")

    provider = FakeProvider()
    run(db, provider, max_requests=10)

    assert provider.calls == [wanted.name]


class PhraseProvider(FakeProvider):
    def supports_type(self, entry_type):
        return entry_type in ("word", "phrase")


class NoTypesProvider(FakeProvider):
    def supports_type(self, entry_type):
        return False


def test_provider_decides_which_entry_types_are_looked_up(db, make_entry):
    make_entry(name="solo")
    idiom = make_entry(type="phrase", body="spill the beans")
    make_entry(type="quote", body="to be", author="Shakespeare")

    provider = PhraseProvider({"spill the beans": "To reveal a secret."})
    run(db, provider, max_requests=10)

    assert provider.calls == ["solo", "spill the beans"]
    db.refresh(idiom)
    assert idiom.definition == "To reveal a secret."
    assert idiom.definition_source == SOURCE_API


def test_provider_without_supported_types_makes_no_calls(db, make_entry):
    make_entry(name="solo")
    provider = NoTypesProvider()

    result = run(db, provider, max_requests=10)

    assert provider.calls == []
    assert result.total_processed == 0


def test_empty_string_definition_counts_as_missing(db, make_entry):
    e = make_entry(name="blank", definition="", definition_source=SOURCE_API)

    run(db, FakeProvider({"blank": "Now filled."}), max_requests=1)

    db.refresh(e)
    assert e.definition == "Now filled."


def test_success_clears_previous_error(db, make_entry):
    e = make_entry(
        name="retry",
        api_lookup_status=LOOKUP_ERROR,
        api_lookup_attempted_at=days_ago(30),
        api_lookup_error="boom",
    )

    run(db, FakeProvider({"retry": "Works now."}), max_requests=1)

    db.refresh(e)
    assert e.api_lookup_status == LOOKUP_SUCCESS
    assert e.api_lookup_error is None


def test_delay_only_between_calls(db, make_entry, monkeypatch):
    for name in ("a", "b", "c"):
        make_entry(name=name)
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(definition_updater.asyncio, "sleep", fake_sleep)

    asyncio.run(
        update_definitions(db, UpdateConfig(max_requests=10, rate_limit_ms=250), provider=FakeProvider())
    )

    assert sleeps == [0.25, 0.25]


def test_unknown_provider_is_a_setup_failure(db, make_entry):
    make_entry(name="x")
    with pytest.raises(UnknownProviderError):
        asyncio.run(update_definitions(db, UpdateConfig(provider="nope")))


def test_calls_never_exceed_cap_with_mixed_outcomes(db, make_entry):
    for i in range(6):
        make_entry(name=f"w{i}")
    provider = FakeProvider({"w0": None, "w1": ValueError("bad"), "w2": "ok"})

    result = run(db, provider, max_requests=4)

    assert len(provider.calls) == 4
    assert result.total_processed == 4
    assert result.successful_updates + result.not_found + result.failures == 4
    assert db.query(Entry).filter(Entry.api_lookup_status.is_(None)).count() == 2
