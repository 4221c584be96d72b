"""
Tests for the account store.

These tests verify:
  - Single-document get / set / update behave like a key-document store
  - Reset-style bulk delete removes everything, across several batches
  - Transactions commit every staged write together
  - A write conflict re-runs the transaction body against fresh data
  - A transaction that keeps conflicting gives up with StoreError
  - Creating an account that already exists reports it instead of failing
  - Driver errors, including integer overflow, surface as StoreError
"""

import asyncio

import pytest

from ledger.exceptions import StoreError
from ledger.store import AccountStore


class TestSingleDocument:

    async def test_get_missing_account_returns_none(self, store):
        assert await store.get("nobody") is None

    async def test_set_creates_account(self, store):
        account = await store.set("alice", 100)
        assert account.id == "alice"
        assert account.balance == 100

        fetched = await store.get("alice")
        assert fetched.balance == 100
        assert fetched.version == 1

    async def test_set_overwrites_existing_account(self, store):
        await store.set("alice", 100)
        await store.set("alice", 25)
        assert (await store.get("alice")).balance == 25

    async def test_create_new_account(self, store):
        account = await store.create("alice", 40)
        assert account is not None
        assert (await store.get("alice")).balance == 40

    async def test_create_existing_account_returns_none(self, store):
        await store.set("alice", 100)
        assert await store.create("alice", 5) is None
        assert (await store.get("alice")).balance == 100

    async def test_concurrent_creates_insert_once(self, store):
        results = await asyncio.gather(*(store.create("alice", i + 1) for i in range(5)))

        created = [account for account in results if account is not None]
        assert len(created) == 1
        assert (await store.get("alice")).balance == created[0].balance

    async def test_balance_too_large_for_column_is_store_error(self, store):
        await store.set("alice", 10)
        with pytest.raises(StoreError):
            await store.update("alice", 2**64)
        assert (await store.get("alice")).balance == 10

    async def test_update_existing_account_bumps_version(self, store):
        await store.set("alice", 100)
        await store.update("alice", 150)

        account = await store.get("alice")
        assert account.balance == 150
        assert account.version == 2

    async def test_update_missing_account_fails(self, store):
        with pytest.raises(StoreError):
            await store.update("ghost", 10)
        assert await store.get("ghost") is None

    async def test_negative_balance_rejected_by_database(self, store):
        """The CHECK constraint backs up the service-level funds check."""
        await store.set("alice", 10)
        with pytest.raises(StoreError):
            await store.update("alice", -1)
        assert (await store.get("alice")).balance == 10


class TestDeleteAll:

    async def test_delete_all_on_empty_store(self, store):
        assert await store.delete_all() == 0

    async def test_delete_all_in_several_batches(self, store):
        for i in range(7):
            await store.set(f"acct-{i}", i + 1)

        deleted = await store.delete_all(batch_size=3)

        assert deleted == 7
        for i in range(7):
            assert await store.get(f"acct-{i}") is None


class TestRunTransaction:

    async def test_commits_all_writes(self, store):
        await store.set("alice", 100)

        async def body(txn):
            alice = await txn.get("alice")
            bob = await txn.get("bob")
            assert bob is None
            txn.set("alice", alice.balance - 30)
            txn.set("bob", 30)
            return "done"

        assert await store.run_transaction(body) == "done"
        assert (await store.get("alice")).balance == 70
        assert (await store.get("bob")).balance == 30

    async def test_body_without_writes_changes_nothing(self, store):
        await store.set("alice", 100)

        async def body(txn):
            await txn.get("alice")
            return None

        await store.run_transaction(body)
        account = await store.get("alice")
        assert account.balance == 100
        assert account.version == 1

    async def test_retries_after_concurrent_update(self, store):
        """Another writer changes the row between our read and our commit."""
        await store.set("alice", 100)
        attempts = 0

        async def body(txn):
            nonlocal attempts
            attempts += 1
            alice = await txn.get("alice")
            if attempts == 1:
                await store.update("alice", 500)
            txn.set("alice", alice.balance + 10)
            return alice.balance

        seen = await store.run_transaction(body)

        assert attempts == 2
        assert seen == 500
        assert (await store.get("alice")).balance == 510

    async def test_retries_after_concurrent_insert(self, store):
        """Another writer creates the account we were about to create."""
        attempts = 0

        async def body(txn):
            nonlocal attempts
            attempts += 1
            bob = await txn.get("bob")
            if attempts == 1:
                assert bob is None
                await store.set("bob", 7)
            txn.set("bob", (bob.balance if bob else 0) + 1)

        await store.run_transaction(body)

        assert attempts == 2
        assert (await store.get("bob")).balance == 8

    async def test_gives_up_after_max_attempts(self, store):
        await store.set("alice", 100)
        limited = AccountStore(store.engine, max_attempts=3)
        attempts = 0

        async def body(txn):
            nonlocal attempts
            attempts += 1
            alice = await txn.get("alice")
            await store.update("alice", alice.balance + 1)
            txn.set("alice", 0)

        with pytest.raises(StoreError):
            await limited.run_transaction(body)

        assert attempts == 3
        # Only the interfering writes landed; the transaction never did
        assert (await store.get("alice")).balance == 103

    async def test_balance_too_large_for_column_aborts_transaction(self, store):
        await store.set("alice", 10)

        async def body(txn):
            alice = await txn.get("alice")
            txn.set("alice", alice.balance + 2**64)

        with pytest.raises(StoreError):
            await store.run_transaction(body)
        assert (await store.get("alice")).balance == 10

    async def test_read_after_write_is_refused(self, store):
        await store.set("alice", 100)

        async def body(txn):
            await txn.get("alice")
            txn.set("alice", 1)
            await txn.get("bob")

        with pytest.raises(RuntimeError):
            await store.run_transaction(body)
        assert (await store.get("alice")).balance == 100

    async def test_write_without_read_is_refused(self, store):
        async def body(txn):
            txn.set("alice", 1)

        with pytest.raises(RuntimeError):
            await store.run_transaction(body)

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            AccountStore(engine=None, max_attempts=0)
