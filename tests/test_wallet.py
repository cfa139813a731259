"""
Tests for the wallet key store and signing.

Key derivation and signing need the secp256k1 C bindings; those tests are
skipped when the library is not installed.
"""

from __future__ import annotations

import os
import stat
from unittest.mock import patch

import pytest

from bubble_tools.address import keccak_hex
from bubble_tools.wallet import SigningKey, Wallet, WalletError, _import_secp256k1

try:
    import secp256k1
    HAS_SECP256K1 = True
except ImportError:
    HAS_SECP256K1 = False

requires_secp256k1 = pytest.mark.skipif(
    not HAS_SECP256K1,
    reason="secp256k1 C bindings not installed (pip install secp256k1)",
)

KEY_1 = "bf2ab3d3f4d017b1775dfae180da93d8bb6c4306327ec2bf24f92c8604440945"
ADDR_1 = "0x4e16dd537432447fb9cec2726252accb4514abae"
PUBLIC_KEY_1 = (
    "0x04ba032b6edcab16b0eb13e77891af30a8546c68ff4de508703623a1169dbaebcf"
    "87f27afc157f5c940092abd1c7060089b15ccf4104058fc0de8fe92a0f8181fc"
)
KEY_2 = "c98ef00c9c97dfd3c690bb07c85cba7f8ceabfb789454487d89c14b799c3ac58"
ADDR_2 = "0x72e05725cd2d1fd3fb5df419d33c4cadc69fdfaf"


@pytest.fixture
def wallet(tmp_path):
    return Wallet(tmp_path / "app")


class TestImport:

    def test_missing_library_hint(self):
        with patch.dict("sys.modules", {"secp256k1": None}):
            with pytest.raises(ImportError, match="pip install bubble-tools\\[wallet\\]"):
                _import_secp256k1()


class TestSigningKey:

    @requires_secp256k1
    def test_derives_address_and_public_key(self):
        key = SigningKey.from_private_key(KEY_1)
        assert key.address == ADDR_1
        assert key.public_key == PUBLIC_KEY_1

    @requires_secp256k1
    def test_accepts_prefixed_hex_and_bytes(self):
        assert SigningKey.from_private_key("0x" + KEY_1).address == ADDR_1
        assert SigningKey.from_private_key(bytes.fromhex(KEY_1)).address == ADDR_1

    @pytest.mark.parametrize("bad", ["", "0x1234", "zz" * 32, KEY_1 + "00"])
    def test_malformed_key(self, bad):
        with pytest.raises(WalletError):
            SigningKey.from_private_key(bad)

    @requires_secp256k1
    def test_zero_key_rejected(self):
        with pytest.raises(WalletError):
            SigningKey.from_private_key("00" * 32)

    def test_private_key_not_in_repr(self):
        key = SigningKey("x", ADDR_1, PUBLIC_KEY_1, bytes.fromhex(KEY_1))
        assert KEY_1 not in repr(key)

    @requires_secp256k1
    def test_sign_format(self):
        key = SigningKey.from_private_key(KEY_1)
        sig = key.sign(keccak_hex("hello"))
        assert sig.startswith("0x")
        assert len(sig) == 2 + 65 * 2
        assert sig[-2:] in ("00", "01")

    @requires_secp256k1
    def test_sign_deterministic(self):
        key = SigningKey.from_private_key(KEY_1)
        digest = keccak_hex("hello")
        assert key.sign(digest) == key.sign(bytes.fromhex(digest[2:]))

    @requires_secp256k1
    def test_signature_recovers_to_public_key(self):
        key = SigningKey.from_private_key(KEY_1)
        digest = bytes.fromhex(keccak_hex("hello")[2:])
        sig = bytes.fromhex(key.sign(digest)[2:])

        verifier = secp256k1.PublicKey()
        recoverable = verifier.ecdsa_recoverable_deserialize(sig[:64], sig[64])
        recovered = verifier.ecdsa_recover(digest, recoverable, raw=True)
        assert secp256k1.PublicKey(recovered).serialize(compressed=False).hex() == PUBLIC_KEY_1[2:]

    def test_sign_requires_32_bytes(self):
        key = SigningKey("x", ADDR_1, PUBLIC_KEY_1, bytes.fromhex(KEY_1))
        with pytest.raises(WalletError):
            key.sign(b"\x00" * 31)


class TestWalletFiles:

    def test_empty(self, wallet):
        assert wallet.labels() == []
        assert wallet.list_keys() == []
        assert not wallet.has_key()
        assert wallet.lookup("default-key") is None

    def test_get_missing_key(self, wallet):
        with pytest.raises(WalletError, match="does not exist"):
            wallet.get_key()

    @pytest.mark.parametrize("label", ["", "../escape", ".hidden", "a/b"])
    def test_invalid_labels(self, wallet, label):
        with pytest.raises(WalletError):
            wallet.add_key(label, KEY_1)
        assert wallet.lookup(label) is None

    def test_remove_default_refused(self, wallet):
        with pytest.raises(WalletError, match="cannot delete the default-key"):
            wallet.remove_key("default-key")

    def test_remove_initial_refused(self, wallet):
        with pytest.raises(WalletError, match="cannot delete the initial-application-key"):
            wallet.remove_key("initial-application-key")

    def test_remove_missing(self, wallet):
        with pytest.raises(WalletError, match="does not exist"):
            wallet.remove_key("nobody")

    def test_lookup_skips_corrupt_key_file(self, wallet):
        wallet.wallet_dir.mkdir(parents=True)
        (wallet.wallet_dir / "bob").write_text("zz")
        assert wallet.has_key("bob")
        assert wallet.lookup("bob") is None
        with pytest.raises(WalletError, match="invalid private key"):
            wallet.get_key("bob")

    def test_lookup_without_library(self, wallet):
        wallet.wallet_dir.mkdir(parents=True)
        (wallet.wallet_dir / "bob").write_text(KEY_1)
        with patch.dict("sys.modules", {"secp256k1": None}):
            assert wallet.lookup("bob") is None


@requires_secp256k1
class TestWalletKeys:

    def test_add_and_get(self, wallet):
        key = wallet.add_key("Signer", KEY_1)
        assert key.label == "signer"
        assert wallet.get_key("SIGNER").address == ADDR_1

    def test_key_file_private(self, wallet):
        wallet.add_key("signer", KEY_1)
        path = wallet.wallet_dir / "signer"
        assert path.read_text() == KEY_1
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(wallet.wallet_dir).st_mode) == 0o700

    def test_no_overwrite(self, wallet):
        wallet.add_key("signer", KEY_1)
        with pytest.raises(WalletError, match="already exists"):
            wallet.add_key("signer", KEY_2)
        assert wallet.get_key("signer").address == ADDR_1

    def test_first_default_becomes_initial(self, wallet):
        wallet.add_key("default-key", KEY_1)
        assert wallet.get_key("initial-application-key").address == ADDR_1

    def test_initial_never_overwritten(self, wallet):
        wallet.add_key("default-key", KEY_1)
        wallet.set_key(KEY_2, "default-key", force=True)
        assert wallet.get_key("initial-application-key").address == ADDR_1
        assert wallet.get_key().address == ADDR_2

    def test_initial_cannot_be_set(self, wallet):
        with pytest.raises(WalletError, match="cannot overwrite"):
            wallet.add_key("initial-application-key", KEY_1)

    def test_create_key(self, wallet):
        key = wallet.create_key("fresh")
        assert wallet.get_key("fresh").address == key.address
        assert wallet.lookup("fresh").public_key == key.public_key

    def test_set_default(self, wallet):
        wallet.add_key("default-key", KEY_1)
        wallet.add_key("other", KEY_2)
        wallet.set_default("other")
        assert wallet.get_key().address == wallet.get_key("other").address
        wallet.set_default()
        assert wallet.get_key().address == ADDR_1

    def test_list_keys_sorted(self, wallet):
        wallet.add_key("zed", KEY_2)
        wallet.add_key("default-key", KEY_1)
        labels = [ref.label for ref in wallet.list_keys()]
        assert labels == ["default-key", "initial-application-key", "zed"]

    def test_lookup_case_insensitive(self, wallet):
        wallet.add_key("signer", KEY_1)
        ref = wallet.lookup("SIGNER")
        assert ref.address == ADDR_1
        assert ref.label == "signer"

    def test_remove(self, wallet):
        wallet.add_key("signer", KEY_1)
        wallet.remove_key("Signer")
        assert not wallet.has_key("signer")

    def test_info_label_or_private_key(self, wallet):
        wallet.add_key("signer", KEY_1)
        assert wallet.get_info("signer").address == ADDR_1
        assert wallet.get_info(KEY_1).public_key == PUBLIC_KEY_1
