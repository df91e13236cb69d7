"""Wire contract version shared by producers and consumers."""

from typing import Literal

CONTRACT_VERSION = "1.0.0"

ContractVersion = Literal["1.0.0"]
