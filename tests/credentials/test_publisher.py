"""Tests for the batch publisher: chunking, ordering, atomicity, policies."""

import base64
import json

import pytest

from auctionlist.credentials.errors import (
    EncryptionNetworkError,
    FileSystemError,
    InvalidAddress,
    UploadFailed,
)
from auctionlist.credentials.models import SignatureLayout
from auctionlist.credentials.pipeline import FailurePolicy, RetryPolicy
from auctionlist.credentials.publisher import (
    BatchPublisher,
    PublisherState,
    chunk_addresses,
    read_addresses,
)
from auctionlist.credentials.sealer import CredentialSealer, decrypt_string
from auctionlist.credentials.store.filesystem import AuditFileStore, PublicationJournal
from fakes import (
    ALLOW_LIST_CONTRACT,
    FakeApi,
    FakeNetwork,
    FakePinning,
    bad_checksum_address,
    make_addresses,
)


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "signatures"


def _publisher(auction, authority, auth_sig, out_dir, network=None, pinning=None, **kwargs):
    return BatchPublisher(
        auction=auction,
        network_name="xdai",
        authority=authority,
        sealer=CredentialSealer(network or FakeNetwork()),
        pinning=pinning or FakePinning(),
        audit_store=AuditFileStore(out_dir),
        auth_sig=auth_sig,
        **kwargs,
    )


def _load(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestChunking:

    @pytest.mark.parametrize("n,size,expected", [
        (0, 10, []),
        (1, 10, [1]),
        (10, 10, [10]),
        (11, 10, [10, 1]),
        (23, 10, [10, 10, 3]),
        (5, 1, [1, 1, 1, 1, 1]),
    ])
    def test_ceiling_division(self, n, size, expected):
        addresses = make_addresses(n)
        chunks = chunk_addresses(addresses, size)
        assert [len(c) for c in chunks] == expected
        assert [a for c in chunks for a in c] == addresses

    def test_rejects_zero_chunk_size(self):
        with pytest.raises(ValueError):
            chunk_addresses(make_addresses(3), 0)


class TestReadAddresses:

    def test_trims_and_drops_empty(self, tmp_path):
        a, b, c = make_addresses(3)
        path = tmp_path / "addresses.txt"
        path.write_text(f" {a},\n{b} ,  {c},\n")
        assert read_addresses(path) == [a, b, c]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileSystemError):
            read_addresses(tmp_path / "missing.txt")


class TestBatchPublisher:

    @pytest.mark.asyncio
    async def test_two_address_round_trip(self, auction, authority, auth_sig, out_dir):
        pinning = FakePinning()
        publisher = _publisher(auction, authority, auth_sig, out_dir, pinning=pinning)
        a, b = make_addresses(2)

        report = await publisher.run([a, b])

        assert publisher.state is PublisherState.DONE
        assert report.chunks_written == [0]
        assert sorted(p.name for p in out_dir.iterdir()) == ["signatures-0.json"]

        data = _load(out_dir / "signatures-0.json")
        assert data["auctionId"] == 7
        assert data["chainId"] == 100
        assert data["allowListContract"] == ALLOW_LIST_CONTRACT
        assert [s["user"] for s in data["signatures"]] == [a, b]

        assert len(pinning.records) == 2
        assert [r.to_pinata_body()["pinataMetadata"]["keyvalues"]["address"] for r in pinning.records] == [a, b]
        assert all(r.auction_id == 7 and r.chain_id == 100 for r in pinning.records)

    @pytest.mark.asyncio
    async def test_chunk_boundary(self, auction, authority, auth_sig, out_dir):
        addresses = make_addresses(23)
        publisher = _publisher(auction, authority, auth_sig, out_dir, chunk_size=10)

        report = await publisher.run(addresses)

        assert report.chunks_written == [0, 1, 2]
        assert report.addresses_processed == 23
        files = [_load(out_dir / f"signatures-{i}.json") for i in range(3)]
        assert [len(f["signatures"]) for f in files] == [10, 10, 3]
        assert [s["user"] for f in files for s in f["signatures"]] == addresses

    @pytest.mark.asyncio
    async def test_policy_bound_to_sealed_address(self, auction, authority, auth_sig, out_dir):
        network = FakeNetwork()
        pinning = FakePinning()
        publisher = _publisher(auction, authority, auth_sig, out_dir, network=network, pinning=pinning)
        addresses = make_addresses(4)

        await publisher.run(addresses)
        audit = _load(out_dir / "signatures-0.json")

        for call, record, entry in zip(network.calls, pinning.records, audit["signatures"]):
            assert call["conditions"][0]["returnValueTest"]["value"] == record.address
            assert entry["user"] == record.address
            plaintext = decrypt_string(base64.b64decode(record.encrypted_string), call["key"])
            assert plaintext == entry["signature"]
            assert call["auth_sig"] is auth_sig

    @pytest.mark.asyncio
    async def test_packed_signatures_by_default(self, auction, authority, auth_sig, out_dir):
        await _publisher(auction, authority, auth_sig, out_dir).run(make_addresses(1))
        sig = _load(out_dir / "signatures-0.json")["signatures"][0]["signature"]
        assert len(bytes.fromhex(sig[2:])) == 65

    @pytest.mark.asyncio
    async def test_abi_layout(self, auction, authority, auth_sig, out_dir):
        publisher = _publisher(auction, authority, auth_sig, out_dir, layout=SignatureLayout.ABI)
        await publisher.run(make_addresses(1))
        sig = _load(out_dir / "signatures-0.json")["signatures"][0]["signature"]
        assert len(bytes.fromhex(sig[2:])) == 96

    @pytest.mark.asyncio
    async def test_failure_mid_chunk_writes_no_audit(self, auction, authority, auth_sig, out_dir):
        # chunk 0 ok, chunk 1 fails at its third address (upload call 12)
        pinning = FakePinning(fail_on_call=12)
        publisher = _publisher(auction, authority, auth_sig, out_dir, pinning=pinning, chunk_size=10)

        with pytest.raises(UploadFailed):
            await publisher.run(make_addresses(25))

        assert publisher.state is PublisherState.FAILED
        assert (out_dir / "signatures-0.json").exists()
        assert not (out_dir / "signatures-1.json").exists()
        assert not (out_dir / "signatures-2.json").exists()

    @pytest.mark.asyncio
    async def test_malformed_address_aborts_chunk(self, auction, authority, auth_sig, out_dir):
        pinning = FakePinning()
        publisher = _publisher(auction, authority, auth_sig, out_dir, pinning=pinning)
        a, b = make_addresses(2)

        with pytest.raises(InvalidAddress) as exc:
            await publisher.run([a, "0xnot-an-address", b])

        assert exc.value.address == "0xnot-an-address"
        assert not (out_dir / "signatures-0.json").exists()
        assert [r.address for r in pinning.records] == [a]

    @pytest.mark.asyncio
    async def test_bad_checksum_aborts_chunk(self, auction, authority, auth_sig, out_dir):
        pinning = FakePinning()
        publisher = _publisher(auction, authority, auth_sig, out_dir, pinning=pinning, chunk_size=2)
        a, b, c = make_addresses(3)
        bad = bad_checksum_address()

        with pytest.raises(InvalidAddress) as exc:
            await publisher.run([a, b, c, bad])

        assert exc.value.address == bad
        assert publisher.state is PublisherState.FAILED
        assert (out_dir / "signatures-0.json").exists()
        assert not (out_dir / "signatures-1.json").exists()
        assert [r.address for r in pinning.records] == [a, b, c]

    @pytest.mark.asyncio
    async def test_retry_recovers_transient_failures(self, auction, authority, auth_sig, out_dir, no_sleep):
        network = FakeNetwork(fail_times=1)
        pinning = FakePinning(fail_times=2)
        publisher = _publisher(
            auction, authority, auth_sig, out_dir,
            network=network, pinning=pinning,
            retry=RetryPolicy(max_attempts=3, base_delay=0), sleep=no_sleep,
        )

        report = await publisher.run(make_addresses(2))

        assert report.chunks_written == [0]
        assert len(pinning.records) == 2
        assert pinning.attempts == 4

    @pytest.mark.asyncio
    async def test_no_retry_by_default(self, auction, authority, auth_sig, out_dir):
        publisher = _publisher(auction, authority, auth_sig, out_dir, network=FakeNetwork(fail_times=1))
        with pytest.raises(EncryptionNetworkError):
            await publisher.run(make_addresses(1))

    @pytest.mark.asyncio
    async def test_skip_policy_continues(self, auction, authority, auth_sig, out_dir):
        a, b, c = make_addresses(3)
        pinning = FakePinning(fail_on_call=1)
        publisher = _publisher(
            auction, authority, auth_sig, out_dir,
            pinning=pinning, failure_policy=FailurePolicy.SKIP,
        )

        report = await publisher.run([a, "bogus", b, c])

        assert publisher.state is PublisherState.DONE
        assert [addr for addr, _ in report.failed] == ["bogus", b]
        users = [s["user"] for s in _load(out_dir / "signatures-0.json")["signatures"]]
        assert users == [a, c]

    @pytest.mark.asyncio
    async def test_resume_skips_published_addresses(self, auction, authority, auth_sig, out_dir):
        a, b, c = make_addresses(3)
        journal = PublicationJournal(out_dir, auction)
        journal.record(a, "bafy-old")
        journal.record(b, "bafy-old")
        pinning = FakePinning()
        network = FakeNetwork()
        publisher = _publisher(
            auction, authority, auth_sig, out_dir,
            network=network, pinning=pinning, journal=journal, resume=True,
        )

        report = await publisher.run([a, b, c])

        assert report.resumed == [a, b]
        assert [r.address for r in pinning.records] == [c]
        assert len(network.calls) == 1
        users = [s["user"] for s in _load(out_dir / "signatures-0.json")["signatures"]]
        assert users == [a, b, c]

    @pytest.mark.asyncio
    async def test_journal_records_uploads(self, auction, authority, auth_sig, out_dir):
        journal = PublicationJournal(out_dir, auction)
        a, b = make_addresses(2)
        await _publisher(auction, authority, auth_sig, out_dir, journal=journal).run([a, b])

        reloaded = PublicationJournal(out_dir, auction)
        assert a in reloaded and b in reloaded
        assert reloaded.get(a).cid == "bafy1"

    @pytest.mark.asyncio
    async def test_posts_each_chunk_to_api(self, auction, authority, auth_sig, out_dir):
        api = FakeApi()
        publisher = _publisher(auction, authority, auth_sig, out_dir, api=api, chunk_size=2)
        await publisher.run(make_addresses(3))
        assert [len(a.signatures) for a in api.posted] == [2, 1]

    @pytest.mark.asyncio
    async def test_run_file(self, auction, authority, auth_sig, out_dir, tmp_path):
        addresses = make_addresses(3)
        path = tmp_path / "list.txt"
        path.write_text(", ".join(addresses))
        report = await _publisher(auction, authority, auth_sig, out_dir).run_file(path)
        assert report.addresses_processed == 3

    @pytest.mark.asyncio
    async def test_empty_input_reaches_done(self, auction, authority, auth_sig, out_dir):
        publisher = _publisher(auction, authority, auth_sig, out_dir)
        report = await publisher.run([])
        assert publisher.state is PublisherState.DONE
        assert report.chunks_written == []
