import pytest

from core.utils.exceptions import AccountNotFoundError, InvalidPasswordError, VaultNotInitializedError
from services.vault.key_loader import AccountKeyLoader
from services.vault.models import EncryptedAccount


class TestAccountKeyLoader:

    @pytest.mark.asyncio
    async def test_load_all_accounts_decrypts_every_row(self, test_settings, seeded_repository, master_password):
        loader = AccountKeyLoader(test_settings, seeded_repository)

        entries = await loader.load_all_accounts(master_password)

        by_id = {e.account_id: e for e in entries}
        assert set(by_id) == {"acc1", "acc2"}
        assert by_id["acc1"].signing_key.reveal() == "0x" + "11" * 32
        assert by_id["acc1"].address == "0x" + "aa" * 20
        assert by_id["acc2"].account_name == "Hedge"

    @pytest.mark.asyncio
    async def test_undecryptable_rows_are_skipped(self, test_settings, seeded_repository, master_password):
        seeded_repository.accounts["broken"] = EncryptedAccount(
            account_id="broken", name="Broken", address="0x" + "cc" * 20,
            ciphertext="00" * 66, iv="00" * 16, tag="00" * 16,
        )
        loader = AccountKeyLoader(test_settings, seeded_repository)

        entries = await loader.load_all_accounts(master_password)

        assert {e.account_id for e in entries} == {"acc1", "acc2"}

    @pytest.mark.asyncio
    async def test_wrong_password_loads_nothing(self, test_settings, seeded_repository):
        loader = AccountKeyLoader(test_settings, seeded_repository)
        assert await loader.load_all_accounts("Wr0ng!Password") == []

    @pytest.mark.asyncio
    async def test_missing_salt_raises(self, test_settings, fake_repository):
        loader = AccountKeyLoader(test_settings, fake_repository)
        with pytest.raises(VaultNotInitializedError):
            await loader.load_all_accounts("anything")

    @pytest.mark.asyncio
    async def test_load_account_single(self, test_settings, seeded_repository, master_password):
        loader = AccountKeyLoader(test_settings, seeded_repository)

        entry = await loader.load_account("acc2", master_password)

        assert entry.account_id == "acc2"
        assert entry.signing_key.reveal() == "0x" + "22" * 32

    @pytest.mark.asyncio
    async def test_load_account_unknown_id(self, test_settings, seeded_repository, master_password):
        loader = AccountKeyLoader(test_settings, seeded_repository)
        with pytest.raises(AccountNotFoundError):
            await loader.load_account("nope", master_password)

    @pytest.mark.asyncio
    async def test_load_account_wrong_password(self, test_settings, seeded_repository):
        loader = AccountKeyLoader(test_settings, seeded_repository)
        with pytest.raises(InvalidPasswordError):
            await loader.load_account("acc1", "Wr0ng!Password")
