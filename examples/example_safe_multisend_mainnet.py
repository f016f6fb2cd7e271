import asyncio

from eth_abi import encode

from calldisasm.addresses import AddressRegistry
from calldisasm.clients.contract_info import ContractInfoService
from calldisasm.decoding.abi import function_selector
from calldisasm.decoding.disassembler import Disassembler

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
UNISWAP_V2_ROUTER = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
SAFE_MULTISEND = "0x40a2accbd92bca938b02010e17a5b8929b49130d"  # MultiSendCallOnly 1.3.0


def call(signature: str, types: list[str], args: list) -> bytes:
    return bytes.fromhex(function_selector(signature)[2:]) + encode(types, args)


def packed(operation: int, to: str, value: int, data: bytes) -> bytes:
    return (
        operation.to_bytes(1, "big")
        + bytes.fromhex(to[2:])
        + value.to_bytes(32, "big")
        + len(data).to_bytes(32, "big")
        + data
    )


# approve the router, then swap USDC -> WETH, bundled in one Safe transaction
approve = call("approve(address,uint256)", ["address", "uint256"], [UNISWAP_V2_ROUTER, 1_000 * 10**6])
swap = call(
    "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)",
    ["uint256", "uint256", "address[]", "address", "uint256"],
    [1_000 * 10**6, 0, [USDC, WETH], SAFE_MULTISEND, 2**32],
)
multisend = call(
    "multiSend(bytes)",
    ["bytes"],
    [packed(0, USDC, 0, approve) + packed(0, UNISWAP_V2_ROUTER, 0, swap)],
)
payload = "0x" + multisend.hex()


async def main():
    (root,) = Disassembler().decode_payload(payload)
    for sub in root.children:
        print(sub.address, sub.function_name, [p.value for p in sub.params])

    registry = AddressRegistry()
    registry.register_calls([root])
    print(registry.stats())

    infos = await ContractInfoService().fetch_contract_info(registry.addresses(), chain_id=1)
    for address, info in infos.items():
        print(address, info.symbol, info.decimals)


if __name__ == "__main__":
    asyncio.run(main())
