"""Unit tests for the transaction and account stores"""

import json
import os
import stat
from datetime import date

from bankcli.domain.models import DateInterval
from bankcli.domain.transactions import build_transaction_key
from bankcli.infrastructure.cache.stores import AccountStore, TransactionStore

JANUARY = DateInterval(date(2024, 1, 1), date(2024, 1, 31))


def test_empty_store_is_invalid(transaction_store):
    assert transaction_store.is_valid(JANUARY) is False
    assert transaction_store.read(JANUARY) == []
    assert transaction_store.last_update is None
    assert not transaction_store.file.path.exists()


def test_merge_then_valid_for_covered_interval(transaction_store, sample_transactions, clock):
    transaction_store.merge(sample_transactions, JANUARY)

    assert transaction_store.last_update == clock.now
    assert transaction_store.is_valid(JANUARY) is True
    assert transaction_store.is_valid(DateInterval(date(2024, 1, 10), date(2024, 1, 20))) is True
    assert transaction_store.is_valid(DateInterval(date(2024, 1, 15), date(2024, 2, 5))) is False


def test_validity_expires_after_ttl(transaction_store, sample_transactions, clock):
    transaction_store.merge(sample_transactions, JANUARY)

    clock.advance(minutes=59)
    assert transaction_store.is_valid(JANUARY) is True

    clock.advance(minutes=1)
    assert transaction_store.is_valid(JANUARY) is False


def test_read_filters_by_date_regardless_of_validity(transaction_store, sample_transactions, clock):
    transaction_store.merge(sample_transactions, JANUARY)
    clock.advance(days=2)

    records = transaction_store.read(DateInterval(date(2024, 1, 10), date(2024, 1, 20)))

    assert [tx["_id"] for tx in records] == ["trans_002", "trans_003", "trans_004"]


def test_merge_same_batch_twice_deduplicates(transaction_store, sample_transactions):
    assert transaction_store.merge(sample_transactions, JANUARY) == 5
    assert transaction_store.merge(sample_transactions, JANUARY) == 0

    assert transaction_store.info().count == 5


def test_dedup_ignores_fields_outside_content_key(transaction_store, sample_transactions):
    transaction_store.merge(sample_transactions, JANUARY)
    drifted = [dict(tx, merchant={"name": "Renamed"}, category="groceries") for tx in sample_transactions]

    assert transaction_store.merge(drifted, JANUARY) == 0


def test_changed_pending_transaction_is_kept_as_new_record(transaction_store, sample_transactions):
    transaction_store.merge(sample_transactions, JANUARY)
    updated = dict(sample_transactions[0], updated_at="2024-01-05T02:00:00.000Z")

    assert transaction_store.merge([updated], JANUARY) == 1
    assert transaction_store.info().count == 6


def test_content_key_is_stable():
    tx = {"_id": "t1", "_account": "a1", "amount": -5, "date": "2024-01-01", "description": "X", "updated_at": "u"}
    reordered = dict(reversed(list(tx.items())))

    assert build_transaction_key(tx) == build_transaction_key(reordered)
    assert build_transaction_key(tx) != build_transaction_key(dict(tx, amount=-6))


def test_merge_without_interval_leaves_coverage(transaction_store, sample_transactions):
    transaction_store.merge(sample_transactions)

    assert transaction_store.cached_ranges == []
    assert transaction_store.is_valid(JANUARY) is False


def test_merge_extends_coverage(transaction_store):
    transaction_store.merge([], DateInterval(date(2024, 1, 1), date(2024, 1, 15)))
    transaction_store.merge([], DateInterval(date(2024, 1, 16), date(2024, 1, 31)))

    assert transaction_store.cached_ranges == [JANUARY]


def test_persisted_layout_and_permissions(transaction_store, sample_transactions):
    transaction_store.merge(sample_transactions, JANUARY)

    path = transaction_store.file.path
    document = json.loads(path.read_text())
    assert set(document) == {"lastUpdate", "transactions", "cachedRanges"}
    assert document["cachedRanges"] == [{"start": "2024-01-01", "end": "2024-01-31"}]
    assert len(document["transactions"]) == 5
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_state_survives_new_process(transaction_store, sample_transactions, cache_dir, clock):
    transaction_store.merge(sample_transactions, JANUARY)

    reloaded = TransactionStore(cache_dir / "transaction_cache.json", clock=clock)

    assert reloaded.is_valid(JANUARY) is True
    assert reloaded.last_update == clock.now
    assert len(reloaded.read(JANUARY)) == 5


def test_file_read_once_per_process(transaction_store, sample_transactions, cache_dir, clock):
    """Later reads come from memory even if the file changes underneath"""
    transaction_store.merge(sample_transactions, JANUARY)
    (cache_dir / "transaction_cache.json").write_text("{}")

    assert len(transaction_store.read(JANUARY)) == 5


def test_corrupted_file_loads_as_empty_and_flags_error(cache_dir, clock):
    cache_dir.mkdir(parents=True)
    path = cache_dir / "transaction_cache.json"
    path.write_text("{not json")

    store = TransactionStore(path, clock=clock)

    assert store.read(JANUARY) == []
    assert store.had_load_error is True
    assert "transaction_cache.json" in store.load_error_message
    assert path.read_text() == "{not json"  # not repaired


def test_wrong_shape_counts_as_corrupted(cache_dir, clock):
    cache_dir.mkdir(parents=True)
    path = cache_dir / "account_cache.json"
    path.write_text(json.dumps({"lastUpdate": "yesterday-ish", "accounts": "nope"}))

    store = AccountStore(path, clock=clock)

    assert store.read() == []
    assert store.had_load_error is True


def test_write_failure_is_recorded_not_raised(tmp_path, sample_transactions, clock):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    store = TransactionStore(blocker / "transaction_cache.json", clock=clock)

    store.merge(sample_transactions, JANUARY)

    assert store.last_write_error is not None
    assert store.is_valid(JANUARY) is True  # in-memory state still updated


def test_clear_resets_and_persists(transaction_store, sample_transactions):
    transaction_store.merge(sample_transactions, JANUARY)

    transaction_store.clear()

    document = json.loads(transaction_store.file.path.read_text())
    assert document == {"lastUpdate": None, "transactions": [], "cachedRanges": []}
    assert transaction_store.is_valid(JANUARY) is False


def test_account_store_valid_when_fresh_and_non_empty(account_store, sample_accounts, clock):
    assert account_store.is_valid() is False

    account_store.replace(sample_accounts)
    assert account_store.is_valid() is True
    assert account_store.read() == sample_accounts

    clock.advance(hours=4)
    assert account_store.is_valid() is False


def test_account_store_empty_snapshot_is_invalid(account_store):
    account_store.replace([])

    assert account_store.last_update is not None
    assert account_store.is_valid() is False


def test_account_store_replace_overwrites(account_store, sample_accounts):
    account_store.replace(sample_accounts)
    account_store.replace(sample_accounts[:1])

    assert account_store.read() == sample_accounts[:1]
    document = json.loads(account_store.file.path.read_text())
    assert [a["_id"] for a in document["accounts"]] == ["acc_everyday01"]
