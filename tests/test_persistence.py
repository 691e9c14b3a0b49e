"""
Tests for SqlConnectionRepository and TokenCipher against a real SQLite file.
"""

from datetime import datetime, timezone

import pytest
from cryptography.fernet import Fernet
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from connectors.encryption import TokenCipher
from connectors.models import AccountInfo, ConnectionRecord, ConnectionStatus
from connectors.persistence import SqlConnectionRepository
from connectors.store import ConnectionStore
from database.models import ProviderConnection
from database.session import init_db, make_session_factory

TOKEN = "sk_test_51Habcdefghijklmnop"


def _record(**overrides) -> ConnectionRecord:
    now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    data = dict(
        provider="stripe",
        token=TOKEN,
        token_label="sk_t••••mnop",
        status=ConnectionStatus.CONNECTED,
        account_info=AccountInfo(id="acct_1", name="Acme", extra={"country": "US"}),
        connected_at=now,
        last_tested_at=now,
    )
    data.update(overrides)
    return ConnectionRecord(**data)


class TestTokenCipher:
    def test_round_trip(self):
        cipher = TokenCipher(Fernet.generate_key().decode())
        encrypted = cipher.encrypt(TOKEN)

        assert cipher.enabled
        assert encrypted != TOKEN
        assert cipher.decrypt(encrypted) == TOKEN

    def test_no_key_is_passthrough(self):
        cipher = TokenCipher("")
        assert not cipher.enabled
        assert cipher.encrypt(TOKEN) == TOKEN

    def test_invalid_key_disables(self):
        assert not TokenCipher("not-a-fernet-key").enabled

    def test_legacy_plaintext_decrypts_as_is(self):
        cipher = TokenCipher(Fernet.generate_key().decode())
        assert cipher.decrypt(TOKEN) == TOKEN


class TestSqlRepository:
    @pytest.mark.asyncio
    async def test_save_load_update_delete(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'connections.db'}")
        try:
            await init_db(engine)
            factory = make_session_factory(engine)
            repo = SqlConnectionRepository(factory, TokenCipher(Fernet.generate_key().decode()))

            await repo.save(_record())
            async with factory() as session:
                row = (await session.execute(select(ProviderConnection))).scalar_one()
                assert row.token != TOKEN

            [loaded] = await repo.load_all()
            assert loaded.token == TOKEN
            assert loaded.account_info.extra == {"country": "US"}
            assert loaded.connected_at == _record().connected_at
            assert loaded.connected_at.tzinfo is not None

            await repo.update_status("stripe", ConnectionStatus.ERROR, "Token expired or revoked")
            [loaded] = await repo.load_all()
            assert loaded.status == ConnectionStatus.ERROR
            assert loaded.error == "Token expired or revoked"
            assert loaded.token == TOKEN

            await repo.save(_record(account_info=AccountInfo(name="Acme 2")))
            [loaded] = await repo.load_all()
            assert loaded.account_info.name == "Acme 2"
            assert loaded.status == ConnectionStatus.CONNECTED

            await repo.delete("stripe")
            assert await repo.load_all() == []
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_plaintext_rows_survive_enabling_encryption(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'connections.db'}")
        try:
            await init_db(engine)
            factory = make_session_factory(engine)
            await SqlConnectionRepository(factory, TokenCipher(None)).save(_record())

            repo = SqlConnectionRepository(factory, TokenCipher(Fernet.generate_key().decode()))
            [loaded] = await repo.load_all()
            assert loaded.token == TOKEN
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_store_rehydrates_from_sql(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'connections.db'}")
        try:
            await init_db(engine)
            repo = SqlConnectionRepository(make_session_factory(engine))

            first = ConnectionStore(repo)
            first.set_connecting("github")
            first.set_connected("stripe", TOKEN, AccountInfo(name="Acme"))
            await first.drain()

            second = ConnectionStore(repo)
            assert await second.load_from_db() == 2
            assert second.get_status("github") == ConnectionStatus.DISCONNECTED
            assert second.get_token("stripe") == TOKEN
            assert second.get_connection("stripe").token_label == "sk_t••••mnop"
        finally:
            await engine.dispose()
