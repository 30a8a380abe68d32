import hashlib

from salesdesk.utils.passwords import generate_password, hash_password, needs_rehash, verify_password


def _scrypt_hex(plaintext, salt):
    return hashlib.scrypt(plaintext.encode(), salt=salt.encode(), n=16384, r=8, p=1, dklen=64).hex()


def test_argon2_round_trip():
    encoded = hash_password("s3cret-pass")
    assert encoded.startswith("$argon2id$")
    assert verify_password("s3cret-pass", encoded)
    assert not verify_password("other", encoded)
    assert not needs_rehash(encoded)


def test_hashes_are_salted():
    assert hash_password("same") != hash_password("same")


def test_legacy_scrypt_encodings():
    salt_first = "f00d:" + _scrypt_hex("legacy", "f00d")
    digest_first = _scrypt_hex("legacy", "beef") + ".beef"
    for encoded in (salt_first, digest_first):
        assert verify_password("legacy", encoded)
        assert not verify_password("wrong", encoded)
        assert needs_rehash(encoded)


def test_unverifiable_inputs():
    assert not verify_password("", hash_password("x"))
    assert not verify_password("x", "")
    assert not verify_password("x", "plaintext-no-scheme")
    assert not verify_password("x", "salt:not-hex")
    assert not verify_password("x", "$argon2id$garbage")


def test_generate_password():
    password = generate_password()
    assert len(password) == 12
    assert password.isalnum()
    assert generate_password(20) != generate_password(20)
