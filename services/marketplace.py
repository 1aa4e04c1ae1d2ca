"""Deploy and wire the marketplace contracts on a chain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from config import Config
from core import get_logger
from core.constants import QrngSignatures, Roles
from ledger.access import AccessManager
from ledger.chain import Chain, to_address
from ledger.price_feed import PriceFeedManager
from raffles.hub import RESTRICTED_OPERATIONS, RaffleHub
from raffles.raffle import Raffle
from randomness.picker import NumberPicker
from randomness.provider import RandomnessProvider
from randomness.requester import RandomnessRequester
from randomness.winner import WinnerRequester
from services.manifest import (
    QrngEndpoints,
    addresses_path,
    derive_sponsor_wallet,
    load_qrng_endpoints,
    write_json_file,
)
from vaults.deposit_router import VaultDepositRouter
from vaults.distributor import Distributor
from vaults.factory import VaultFactory

logger = get_logger(__name__)


@dataclass
class Marketplace:
    """Handles to every deployed contract."""

    chain: Chain
    deployer: str
    treasury: str
    qrng: QrngEndpoints
    access_manager: AccessManager
    price_feed_manager: PriceFeedManager
    distributor: Distributor
    vault_factory: VaultFactory
    deposit_router: VaultDepositRouter
    provider: RandomnessProvider
    winner_requester: WinnerRequester
    number_picker: NumberPicker
    hub: RaffleHub

    @property
    def airnode(self) -> str:
        return self.qrng.airnode

    def raffle(self, raffle_id: int) -> Raffle:
        return self.hub.raffle(raffle_id)

    def addresses(self) -> Dict[str, str]:
        return {
            "AccessManager": self.access_manager.address,
            "PriceFeedManager": self.price_feed_manager.address,
            "Distributor": self.distributor.address,
            "VaultFactory": self.vault_factory.address,
            "VaultDepositRouter": self.deposit_router.address,
            "RandomnessProvider": self.provider.address,
            "WinnerRequester": self.winner_requester.address,
            "NumberPicker": self.number_picker.address,
            "RaffleHub": self.hub.address,
            "Treasury": self.treasury,
        }


def _configure_requester(
    requester: RandomnessRequester,
    qrng: QrngEndpoints,
    single: str,
    multiple: str,
    deployer: str,
) -> None:
    sponsor_wallet = derive_sponsor_wallet(qrng.xpub, qrng.airnode, requester.address)
    requester.add_new_endpoint(qrng.endpoint_id_uint256, single, sender=deployer)
    requester.add_new_endpoint(qrng.endpoint_id_uint256_array, multiple, sender=deployer)
    requester.set_request_parameters(
        qrng.airnode, requester.address, sponsor_wallet, sender=deployer
    )


def deploy_marketplace(
    chain: Chain,
    config: Config,
    deployer: str,
    treasury: Optional[str] = None,
    qrng: Optional[QrngEndpoints] = None,
) -> Marketplace:
    """Deploy every marketplace contract and connect them.

    The deployment runs as one transaction: any failure leaves the chain
    as it was.

    Args:
        chain: Target chain
        config: Marketplace parameters (cuts, fee, yolo duration, QRNG file)
        deployer: Account owning the contracts; it also receives the manager role
        treasury: Account collecting fees, defaults to ``deployer``
        qrng: Randomness endpoints, read from ``config.qrng_file`` when omitted

    Returns:
        Marketplace: handles to the deployed contracts
    """
    deployer = to_address(deployer)
    treasury = to_address(treasury or deployer)
    if qrng is None:
        qrng = load_qrng_endpoints(config.qrng_file, config.qrng_network)

    with chain.transaction():
        access = AccessManager(chain, deployer)
        feeds = PriceFeedManager(chain, deployer)
        distributor = Distributor(chain, deployer)
        factory = VaultFactory(chain, deployer, distributor.address)
        router = VaultDepositRouter(chain, deployer, factory.address)
        provider = RandomnessProvider(chain, deployer)
        winner_requester = WinnerRequester(chain, deployer, provider.address)
        number_picker = NumberPicker(chain, deployer, provider.address)
        hub = RaffleHub(chain, deployer, access.address, treasury)

        _configure_requester(
            winner_requester,
            qrng,
            QrngSignatures.INDIVIDUAL_WINNER,
            QrngSignatures.MULTIPLE_WINNERS,
            deployer,
        )
        _configure_requester(
            number_picker,
            qrng,
            QrngSignatures.SINGLE_NUMBER,
            QrngSignatures.MULTIPLE_NUMBERS,
            deployer,
        )

        # the hub pauses itself through the access manager
        access.grant_role(Roles.ADMIN, hub.address, sender=deployer)
        access.set_target_function_role(
            hub.address, RESTRICTED_OPERATIONS, Roles.MANAGER, sender=deployer
        )
        access.grant_role(Roles.MANAGER, deployer, sender=deployer)

        hub.set_vault_factory(factory.address, sender=deployer)
        hub.set_deposit_router(router.address, sender=deployer)
        hub.set_winner_requester(winner_requester.address, sender=deployer)
        hub.set_price_feed_manager(feeds.address, sender=deployer)
        hub.set_raffle_cut(config.raffle_cut, sender=deployer)
        hub.set_yolo_raffle_cut(config.yolo_raffle_cut, sender=deployer)
        hub.set_cancelation_fee(config.cancelation_fee, sender=deployer)
        hub.set_yolo_raffle_duration(config.yolo_raffle_duration, sender=deployer)
        router.set_hub(hub.address, sender=deployer)

    logger.info(f"Marketplace deployed, hub at {hub.address}")
    return Marketplace(
        chain=chain,
        deployer=deployer,
        treasury=treasury,
        qrng=qrng,
        access_manager=access,
        price_feed_manager=feeds,
        distributor=distributor,
        vault_factory=factory,
        deposit_router=router,
        provider=provider,
        winner_requester=winner_requester,
        number_picker=number_picker,
        hub=hub,
    )


def export_addresses(marketplace: Marketplace, config: Config, mode: str = "w") -> str:
    """Write the deployed addresses to ``<addresses_folder>/<network>.json``."""
    path = addresses_path(config.addresses_folder, config.qrng_network)
    write_json_file(marketplace.addresses(), path, mode)
    return path
