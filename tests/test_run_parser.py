from __future__ import annotations

import argparse

import pytest

from ethparser.repositories import TransactionsRepository
from ethparser.run_parser import build_parser, load_addresses, main


def test_load_addresses_from_args_and_file(tmp_path) -> None:
    addresses_file = tmp_path / "addresses.txt"
    addresses_file.write_text("0xbbb\n\n  0xccc  \n")

    assert load_addresses(["0xaaa"], str(addresses_file)) == ["0xaaa", "0xbbb", "0xccc"]


def test_load_addresses_nothing() -> None:
    assert load_addresses(None) == []


def test_build_parser_with_memory_storage() -> None:
    args = argparse.Namespace(
        rpc_endpoint="https://test:80",
        start_block=19698124,
        max_blocks_per_batch=4,
        no_new_blocks_pause=1.5,
        batch_timeout=20.0,
        storage="memory",
    )

    parser = build_parser(args)

    assert isinstance(parser.transactions_repo, TransactionsRepository)
    assert parser.transactions_repo.get_last_processed_block() == 19698124
    assert parser.config.max_blocks_per_batch == 4
    assert parser.config.no_new_blocks_pause == 1.5
    assert parser.ethereum_client.rpc.endpoint == "https://test:80"


def test_main_requires_addresses() -> None:
    with pytest.raises(SystemExit):
        main(["--rpc-endpoint", "https://test:80"])
