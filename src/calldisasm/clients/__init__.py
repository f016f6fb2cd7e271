"""Network collaborators: JSON-RPC, Multicall3 contract info and the 4byte registry."""

from calldisasm.clients.contract_info import ContractInfoService
from calldisasm.clients.rpc import RPC
from calldisasm.clients.signatures import SignatureLookupClient

__all__ = ["ContractInfoService", "RPC", "SignatureLookupClient"]
