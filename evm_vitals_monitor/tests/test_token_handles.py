"""代币句柄测试"""

from conftest import CDAI, DAI, GCDAI, GCUSDC, USDC
from evm_vitals_monitor.contracts.token_handles import ERC20Token, GCToken


async def test_erc20_load(fake_rpc):
    token = await ERC20Token.load(fake_rpc, DAI)

    assert token.symbol == "DAI"
    assert token.name == "Dai Stablecoin"
    assert token.decimals == 18


async def test_gctoken_load_resolves_related_tokens(fake_rpc):
    token = await GCToken.load(fake_rpc, GCDAI)

    assert token.symbol == "gcDAI"
    assert token.decimals == 8
    assert token.stakes_token.address == DAI
    assert token.reserve_token.address == CDAI
    assert token.reserve_token.decimals == 8
    assert token.underlying_token.symbol == "DAI"


async def test_amounts_use_owning_token_decimals(fake_rpc):
    token = await GCToken.load(fake_rpc, GCDAI)

    assert await token.total_supply() == "2500"
    assert await token.balance_of(DAI) == "0.12345678"
    assert await token.total_reserve() == "1500"
    assert await token.lending_reserve_underlying() == "1000"
    assert await token.borrowing_reserve_underlying() == "500"
    assert (GCDAI, 'balanceOf', (DAI,)) in fake_rpc.calls


async def test_six_decimal_underlying(fake_rpc):
    token = await GCToken.load(fake_rpc, GCUSDC)

    assert token.underlying_token.address == USDC
    assert await token.lending_reserve_underlying() == "0"
    assert await token.borrowing_reserve_underlying() == "1.5"
