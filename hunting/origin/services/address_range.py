from typing import Iterator

from netaddr import AddrFormatError, IPAddress, IPNetwork

from hunting.origin.errors import ConfigurationError, InvalidRange


class AddressRange:
    """
    An IPv4 CIDR block that expands to its individual addresses.

    Every address of the block is produced, network and broadcast included,
    in ascending order. Iteration is lazy and can be repeated.

    Example:
        rng = AddressRange.parse("10.0.0.0/30")
        list(rng)  # ['10.0.0.0', '10.0.0.1', '10.0.0.2', '10.0.0.3']
    """

    def __init__(self, network: IPNetwork, cidr: str):
        self.network = network
        self.cidr = cidr

    @classmethod
    def parse(cls, cidr: str) -> "AddressRange":
        """
        Parse a CIDR descriptor such as "35.207.0.0/16".

        A bare address is accepted as a /32. Raises InvalidRange for anything
        that is not IPv4 CIDR notation with a prefix between 0 and 32.
        """
        if not isinstance(cidr, str) or not cidr.strip():
            raise InvalidRange(cidr, "empty range")

        text = cidr.strip()
        try:
            network = IPNetwork(text)
        except (AddrFormatError, ValueError, TypeError) as e:
            raise InvalidRange(text, str(e)) from e

        if network.version != 4:
            raise InvalidRange(text, "only IPv4 ranges are supported")

        return cls(network, text)

    def __iter__(self) -> Iterator[str]:
        for address in self.network:
            yield str(address)

    def __len__(self) -> int:
        return self.network.size

    @property
    def size(self) -> int:
        return self.network.size

    @property
    def first(self) -> str:
        return str(IPAddress(self.network.first))

    @property
    def last(self) -> str:
        return str(IPAddress(self.network.last))

    def __repr__(self):
        return f"AddressRange('{self.cidr}', size={self.size})"


def parse_address(text: str) -> str:
    """Validate a single literal IPv4 address and return it normalised."""
    try:
        address = IPAddress(text.strip())
    except (AddrFormatError, ValueError, TypeError, AttributeError) as e:
        raise ConfigurationError(f"Invalid IP address '{text}': {e}") from e
    if address.version != 4:
        raise ConfigurationError(f"Invalid IP address '{text}': only IPv4 is supported")
    return str(address)
