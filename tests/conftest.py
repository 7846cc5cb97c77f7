from __future__ import annotations

import pytest

from auctionlist.chain.signers import LocalAccountSigner
from auctionlist.credentials.models import AuctionRef, AuthSig
from auctionlist.credentials.signer import AuthoritySigner
from fakes import ALLOW_LIST_CONTRACT, AUTHORITY_KEY


async def _no_sleep(_: float) -> None:
    return None


@pytest.fixture
def local_signer():
    return LocalAccountSigner(AUTHORITY_KEY)


@pytest.fixture
def authority(local_signer):
    return AuthoritySigner(local_signer)


@pytest.fixture
def auction():
    return AuctionRef(auction_id=7, chain_id=100, allow_list_contract=ALLOW_LIST_CONTRACT)


@pytest.fixture
def auth_sig(local_signer):
    return AuthSig(
        sig="0x" + "00" * 65,
        signed_message="test statement",
        address=local_signer.address,
    )


@pytest.fixture
def no_sleep():
    return _no_sleep
