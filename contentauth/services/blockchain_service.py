import asyncio
import logging
from concurrent import futures
from typing import Any, Dict, List

from web3 import Web3

from contentauth.config import Settings
from contentauth.utilities.format import format_json, get_ledger_metadata

logger = logging.getLogger(__name__)

MEDIA_REGISTRY_ABI = [
    {
        "inputs": [
            {"internalType": "string", "name": "_hash", "type": "string"},
            {"internalType": "string", "name": "_metadata", "type": "string"}
        ],
        "name": "registerMedia",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "", "type": "uint256"}
        ],
        "name": "mediaRegistry",
        "outputs": [
            {"internalType": "string", "name": "hash", "type": "string"},
            {"internalType": "string", "name": "metadata", "type": "string"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "mediaCount",
        "outputs": [
            {"internalType": "uint256", "name": "", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]


class BlockchainService:
    """
    Ledger registrar backed by the MediaRegistry contract on Sepolia.

    web3 calls block, so every public method runs them in a worker thread;
    callers can then bound them with asyncio.wait_for. Registrations go
    through a dedicated single-thread executor, reads through the default one.
    """

    def __init__(self, settings: Settings):
        self.provider_url = settings.sepolia_rpc_url
        self.contract_address = settings.media_registry_address

        self.web3 = Web3(Web3.HTTPProvider(
            self.provider_url,
            request_kwargs={"timeout": settings.external_call_timeout_seconds}
        ))
        self.account = self.web3.eth.account.from_key(settings.sepolia_private_key)
        self.wallet_address = self.account.address
        self.contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(self.contract_address),
            abi=MEDIA_REGISTRY_ABI
        )

        # Single worker: nonce lookup, signing and sending never interleave,
        # and queued sends never occupy the default executor used by reads
        self._send_executor = futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledger-send")

        logger.info(f"Media registry configured at {self.contract_address} for wallet {self.wallet_address}")

    async def register(self, content_address: str, metadata: Dict[str, Any]) -> str:
        """
        Register a content address on the MediaRegistry contract.

        The transaction is signed with the server wallet and broadcast; the
        method returns once the node accepts it, without waiting for mining.

        Args:
            content_address: The content address to register
            metadata: Descriptive metadata stored next to the address

        Returns:
            The transaction hash as a 0x-prefixed hex string
        """
        payload = format_json(get_ledger_metadata(content_address, metadata), encode=False)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._send_executor, self._send_register, content_address, payload)

    def _send_register(self, content_address: str, payload: str) -> str:
        nonce = self.web3.eth.get_transaction_count(self.wallet_address, "pending")
        tx = self.contract.functions.registerMedia(
            content_address,
            payload
        ).build_transaction({
            'from': self.wallet_address,
            'nonce': nonce,
            'gasPrice': self.web3.eth.gas_price,
        })

        signed_tx = self.account.sign_transaction(tx)

        # Different versions of Web3.py use different attribute names
        if hasattr(signed_tx, 'raw_transaction'):
            raw_tx = signed_tx.raw_transaction
        else:
            raw_tx = signed_tx.rawTransaction

        tx_hash = Web3.to_hex(self.web3.eth.send_raw_transaction(raw_tx))

        logger.info(f"Content address {content_address} submitted to media registry. Transaction hash: {tx_hash}")
        return tx_hash

    def close(self):
        """Stop accepting registrations; sends already queued still run."""
        self._send_executor.shutdown(wait=False)

    async def media_count(self) -> int:
        """Number of entries in the media registry."""
        return await asyncio.to_thread(self.contract.functions.mediaCount().call)

    async def find(self, index: int) -> Dict[str, Any]:
        """
        Read one registry entry.

        Args:
            index: Position of the entry in the registry

        Returns:
            Dict with the index, registered hash and metadata string
        """
        content_hash, metadata = await asyncio.to_thread(
            self.contract.functions.mediaRegistry(index).call
        )
        return {"index": index, "hash": content_hash, "metadata": metadata}

    async def list_registrations(self) -> List[Dict[str, Any]]:
        """Read every registry entry, oldest first."""
        count = await self.media_count()
        return [await self.find(index) for index in range(count)]

    async def is_registered(self, content_address: str) -> bool:
        """
        Check whether a content address appears in the registry.

        Entries are scanned newest first since recent uploads are verified most.
        """
        count = await self.media_count()
        for index in range(count - 1, -1, -1):
            entry = await self.find(index)
            if entry["hash"] == content_address:
                return True
        return False

    async def network_info(self) -> Dict[str, Any]:
        """Chain id, server wallet and its balance in ether."""
        def _read():
            balance = self.web3.eth.get_balance(self.wallet_address)
            return {
                "chainId": self.web3.eth.chain_id,
                "walletAddress": self.wallet_address,
                "contractAddress": self.contract_address,
                "balance": str(Web3.from_wei(balance, "ether")),
            }

        return await asyncio.to_thread(_read)
