from __future__ import annotations

import threading

from mythbuster.infra.db import init_db
from mythbuster.services.quota import QuotaLedger


def test_eleventh_call_is_denied(db, clock):
    ledger = QuotaLedger(db, now_fn=clock)
    decisions = [ledger.admit("myth_verification", 10) for _ in range(11)]
    assert all(d.allowed for d in decisions[:10])
    assert decisions[10].allowed is False
    assert decisions[10].count == 10
    assert ledger.usage("myth_verification") == 10


def test_next_utc_day_starts_from_zero(db, clock):
    ledger = QuotaLedger(db, now_fn=clock)
    for _ in range(10):
        ledger.admit("game_question", 10)
    assert ledger.admit("game_question", 10).allowed is False
    yesterday = ledger.today()

    clock.advance(24 * 60 * 60)
    decision = ledger.admit("game_question", 10)
    assert decision.allowed is True
    assert decision.count == 1
    assert decision.day != yesterday
    assert ledger.usage("game_question", yesterday) == 10


def test_features_are_counted_independently(db, clock):
    ledger = QuotaLedger(db, now_fn=clock)
    for _ in range(3):
        ledger.admit("tracks_generation", 3)
    assert ledger.admit("tracks_generation", 3).allowed is False
    assert ledger.admit("lens_research", 3).allowed is True
    assert ledger.snapshot(["tracks_generation", "lens_research", "mini_myths"]) == {
        "tracks_generation": 3,
        "lens_research": 1,
        "mini_myths": 0,
    }


def test_zero_limit_denies_everything(db, clock):
    ledger = QuotaLedger(db, now_fn=clock)
    decision = ledger.admit("source_analysis", 0)
    assert decision.allowed is False
    assert decision.count == 0


def test_concurrent_admits_never_exceed_limit(tmp_path, clock):
    db = init_db(f"sqlite:///{tmp_path / 'quota.db'}")
    ledger = QuotaLedger(db, now_fn=clock)
    allowed = []
    lock = threading.Lock()

    def worker():
        for _ in range(5):
            decision = ledger.admit("myth_verification", 10)
            with lock:
                allowed.append(decision.allowed)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert allowed.count(True) == 10
    assert ledger.usage("myth_verification") == 10
    db.close()


def test_two_ledgers_share_one_database(tmp_path, clock):
    path = f"sqlite:///{tmp_path / 'shared.db'}"
    first = QuotaLedger(init_db(path), now_fn=clock)
    second = QuotaLedger(init_db(path), now_fn=clock)
    for _ in range(5):
        assert first.admit("mini_myths", 6).allowed
    assert second.admit("mini_myths", 6).allowed
    assert second.admit("mini_myths", 6).allowed is False
    assert first.usage("mini_myths") == 6
