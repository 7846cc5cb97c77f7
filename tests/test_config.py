"""Tests for configuration loading and validation."""

import pytest
from pydantic import SecretStr

from auctionlist.config import env_sections, load_config
from auctionlist.credentials.errors import ConfigError
from auctionlist.credentials.models import SignatureLayout
from auctionlist.credentials.pipeline import FailurePolicy
from fakes import AUTHORITY_KEY

BASE_ENV = {
    "AUCTIONLIST_PINATA__JWT": "jwt-token",
    "AUCTIONLIST_LIT__GATEWAY_URL": "http://lit.test",
    "AUCTIONLIST_CHAIN__PRIVATE_KEY": AUTHORITY_KEY,
}


@pytest.fixture
def address_file(tmp_path):
    path = tmp_path / "addresses.txt"
    path.write_text("0x" + "01" * 20)
    return path


def _cli(address_file, **args):
    values = {"auction_id": 3, "file_with_address": str(address_file)}
    values.update(args)
    return {"args": values}


class TestEnvSections:

    def test_groups_by_section(self):
        sections = env_sections({
            "AUCTIONLIST_PINATA__JWT": "x",
            "AUCTIONLIST_RUN__RESUME": "true",
            "AUCTIONLIST_RUN__RETRY": '{"max_attempts": 4}',
            "AUCTIONLIST_TEST_MODE": "true",
            "OTHER__THING": "y",
        })
        assert sections == {
            "pinata": {"jwt": "x"},
            "run": {"resume": True, "retry": {"max_attempts": 4}},
        }


class TestLoadConfig:

    def test_defaults(self, address_file):
        config = load_config(_cli(address_file), BASE_ENV)

        assert config.args.auction_id == 3
        assert config.run.output_dir == "signatures"
        assert config.run.chunk_size == 10
        assert config.run.signature_layout is SignatureLayout.PACKED
        assert config.run.failure_policy is FailurePolicy.ABORT
        assert config.run.retry.max_attempts == 1
        assert config.chain.signer == "local"
        assert isinstance(config.pinata.jwt, SecretStr)
        assert config.api_url is None

    def test_env_overrides_cli(self, address_file):
        cli = _cli(address_file)
        cli["run"] = {"chunk_size": 20, "output_dir": None}
        env = dict(BASE_ENV, AUCTIONLIST_RUN__CHUNK_SIZE="5")

        config = load_config(cli, env)

        assert config.run.chunk_size == 5
        assert config.run.output_dir == "signatures"

    def test_network_table_from_env(self, address_file):
        env = dict(BASE_ENV, AUCTIONLIST_RUN__NETWORKS='{"names": {"10": "optimism"}}')
        config = load_config(_cli(address_file), env)
        assert config.run.networks.name_for(10) == "optimism"

    def test_none_cli_values_keep_defaults(self, address_file):
        cli = _cli(address_file)
        cli["run"] = {"retry": {"max_attempts": None}, "signature_layout": "abi"}
        config = load_config(cli, BASE_ENV)
        assert config.run.retry.max_attempts == 1
        assert config.run.signature_layout is SignatureLayout.ABI

    def test_api_destinations_are_exclusive(self, address_file):
        env = dict(BASE_ENV, AUCTIONLIST_API__URL="http://api", AUCTIONLIST_API__DEV_URL="http://dev")
        with pytest.raises(ConfigError):
            load_config(_cli(address_file, post_to_api=True, post_to_dev_api=True), env)

    def test_api_url_required(self, address_file):
        with pytest.raises(ConfigError):
            load_config(_cli(address_file, post_to_dev_api=True), BASE_ENV)

    def test_dev_api_url_selected(self, address_file):
        env = dict(BASE_ENV, AUCTIONLIST_API__URL="http://api", AUCTIONLIST_API__DEV_URL="http://dev")
        config = load_config(_cli(address_file, post_to_dev_api=True), env)
        assert config.api_url == "http://dev"

    def test_missing_address_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(_cli(tmp_path / "nope.txt"), BASE_ENV)

    def test_negative_auction_id(self, address_file):
        with pytest.raises(ConfigError):
            load_config(_cli(address_file, auction_id=-1), BASE_ENV)

    def test_zero_chunk_size(self, address_file):
        with pytest.raises(ConfigError):
            load_config(_cli(address_file), dict(BASE_ENV, AUCTIONLIST_RUN__CHUNK_SIZE="0"))

    def test_missing_pinata_jwt(self, address_file):
        env = {k: v for k, v in BASE_ENV.items() if k != "AUCTIONLIST_PINATA__JWT"}
        with pytest.raises(ConfigError):
            load_config(_cli(address_file), env)

    def test_local_signer_requires_key(self, address_file):
        env = {k: v for k, v in BASE_ENV.items() if k != "AUCTIONLIST_CHAIN__PRIVATE_KEY"}
        with pytest.raises(ConfigError):
            load_config(_cli(address_file), env)

    def test_rpc_signer_requires_address(self, address_file):
        env = dict(BASE_ENV, AUCTIONLIST_CHAIN__SIGNER="rpc")
        with pytest.raises(ConfigError):
            load_config(_cli(address_file), env)

    def test_malformed_contract_address(self, address_file):
        env = dict(BASE_ENV, AUCTIONLIST_CHAIN__ALLOW_LIST_CONTRACT="0x1234")
        with pytest.raises(ConfigError):
            load_config(_cli(address_file), env)
