"""Bonjour/mDNS service registration with zeroconf."""

import socket
from typing import Dict, List, Optional

from zeroconf import ServiceInfo, Zeroconf

from .subsystems import DiscoveryRegistrar
from ..utils import logger

RAOP_TYPE = "_raop._tcp.local."
AIRPLAY_TYPE = "_airplay._tcp.local."

MODEL = "AppleTV3,2"


def local_addresses() -> List[str]:
    """IPv4 addresses of this host, empty if they cannot be determined."""
    try:
        _, _, addresses = socket.gethostbyname_ex(socket.gethostname())
    except OSError as e:
        logger.debug(f"Could not resolve local addresses: {e}")
        return []
    return [address for address in addresses if not address.startswith("127.")]


class ZeroconfRegistrar(DiscoveryRegistrar):
    """Advertises the RAOP and AirPlay records of one receiver."""

    def __init__(self, name: str, hw_addr: bytes, zeroconf_factory=Zeroconf):
        """Initialize registrar.

        Args:
            name: Advertised server name
            hw_addr: Six-byte hardware address used as device id
            zeroconf_factory: Callable returning a Zeroconf instance
        """
        self.name = name
        self.hw_addr = hw_addr
        self.zeroconf_factory = zeroconf_factory

        self.zeroconf: Optional[Zeroconf] = None
        self.raop_info: Optional[ServiceInfo] = None
        self.airplay_info: Optional[ServiceInfo] = None

    @property
    def device_id(self) -> str:
        return ":".join(f"{octet:02X}" for octet in self.hw_addr)

    def init(self) -> bool:
        try:
            self.zeroconf = self.zeroconf_factory()
        except OSError as e:
            logger.error(f"Could not start mDNS responder: {e}")
            return False
        return True

    def register_raop(self, port: int):
        instance = f"{self.hw_addr.hex().upper()}@{self.name}"
        self.raop_info = self._register(RAOP_TYPE, instance, port, {
            "txtvers": "1",
            "ch": "2",
            "cn": "0,1,2,3",
            "et": "0,3,5",
            "md": "0,1,2",
            "tp": "UDP",
            "am": MODEL,
        })

    def register_airplay(self, port: int):
        self.airplay_info = self._register(AIRPLAY_TYPE, self.name, port, {
            "deviceid": self.device_id,
            "model": MODEL,
        })

    def unregister_raop(self):
        if self.zeroconf is not None and self.raop_info is not None:
            self.zeroconf.unregister_service(self.raop_info)
        self.raop_info = None

    def unregister_airplay(self):
        if self.zeroconf is not None and self.airplay_info is not None:
            self.zeroconf.unregister_service(self.airplay_info)
        self.airplay_info = None

    def destroy(self):
        if self.zeroconf is not None:
            self.zeroconf.close()
            self.zeroconf = None

    def _register(self, service_type: str, instance: str, port: int,
                  properties: Dict[str, str]) -> ServiceInfo:
        info = ServiceInfo(
            service_type,
            f"{instance}.{service_type}",
            port=port,
            properties=properties,
            server=f"{socket.gethostname()}.local.",
            parsed_addresses=local_addresses(),
        )
        self.zeroconf.register_service(info)
        logger.info(f"Registered {service_type} service '{instance}' on port {port}")
        return info
