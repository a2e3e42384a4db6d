import pytest
from web3 import Web3

from config.constants import BASE_GAS_PRICE, MAX_GAS_PRICE, MIN_LIQUIDITY_OUT
from core.errors import TransportError
from core.gas_policy import GasPolicy
from core.models import Direction, Sufficiency
from services.swap_quoter import SwapQuoter
from fakes import FakeChainClient


@pytest.mark.asyncio
@pytest.mark.parametrize("network_price, expected", [
    (Web3.to_wei(12, "gwei"), Web3.to_wei(12, "gwei")),
    (Web3.to_wei(10, "gwei"), Web3.to_wei(10, "gwei")),
    (Web3.to_wei(5, "gwei"), MAX_GAS_PRICE),
    (Web3.to_wei(40, "gwei"), MAX_GAS_PRICE),
])
async def test_gas_price_is_clamped(network_price, expected):
    policy = GasPolicy(FakeChainClient(gas_price=network_price))
    assert await policy.price() == expected


@pytest.mark.asyncio
async def test_zero_gas_price_falls_back_to_base():
    policy = GasPolicy(FakeChainClient(gas_price=0))
    assert await policy.price() == BASE_GAS_PRICE


@pytest.mark.asyncio
async def test_gas_price_error_uses_max():
    policy = GasPolicy(FakeChainClient(gas_price=TransportError("rpc down")))
    assert await policy.price() == MAX_GAS_PRICE


def test_liquidity_thresholds_per_direction():
    quoter = SwapQuoter(FakeChainClient(), "0x" + "0" * 40)

    assert quoter.classify(0, Direction.FORWARD) is Sufficiency.ZERO
    assert quoter.classify(MIN_LIQUIDITY_OUT - 1, Direction.FORWARD) is Sufficiency.LOW
    assert quoter.classify(MIN_LIQUIDITY_OUT, Direction.FORWARD) is Sufficiency.ADEQUATE
    # reverse порог в 100 раз мягче
    assert quoter.classify(MIN_LIQUIDITY_OUT // 100, Direction.REVERSE) is Sufficiency.ADEQUATE
    assert quoter.classify(MIN_LIQUIDITY_OUT // 100 - 1, Direction.REVERSE) is Sufficiency.LOW


@pytest.mark.asyncio
async def test_quote_takes_last_amount_of_path():
    client = FakeChainClient(amounts_out=[5 * 10 ** 17])
    quoter = SwapQuoter(client, "0x" + "0" * 40)

    quote = await quoter.quote(10 ** 18, ["0xa", "0xb"])

    assert quote.amount_out == 5 * 10 ** 17
    assert quote.sufficiency is Sufficiency.ADEQUATE
    assert client.quotes_requested == [(10 ** 18, ["0xa", "0xb"])]
