import time

import pytest

from signed_store.crypto import ed25519_generate
from signed_store.keyring import TrustedKeyring, identity_from_public_key
from signed_store.storage import ContentStore, InMemoryAccessTracker
from signed_store.verifier import VerificationGate


class FakeClock:
    """Wall clock the tests move by hand."""

    def __init__(self, start=None):
        # whole seconds keep "now + ttl" exact in float arithmetic
        self.now = float(int(time.time())) if start is None else start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signer():
    """(private, public) raw key pair registered in the `keyring` fixture."""
    return ed25519_generate()


@pytest.fixture
def stranger():
    """Key pair that is not in the keyring."""
    return ed25519_generate()


@pytest.fixture
def keyring(signer):
    _, pub = signer
    return TrustedKeyring(identities=(identity_from_public_key(pub, ["ops <ops@example.org>"]),))


@pytest.fixture
def gate(keyring):
    return VerificationGate(keyring)


@pytest.fixture
def store(tmp_path, clock):
    s = ContentStore(tmp_path / "objects", ttl=100, tracker=InMemoryAccessTracker(), clock=clock)
    yield s
    s.close()
