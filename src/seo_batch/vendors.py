"""
Tracking vendor signature table.

A VendorTable maps each tracking vendor to the lower-cased substrings that
reveal it in a request URL, a script source or inline script text. The table
is built once at process start and handed to every component that needs it.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VendorSignature:
    """One tracking vendor and the substrings that identify it."""

    key: str
    label: str
    signatures: Tuple[str, ...]

    def __post_init__(self):
        if not self.key:
            raise ValueError("Vendor key must not be empty")
        cleaned = tuple(s.strip().lower() for s in self.signatures if s and s.strip())
        if not cleaned:
            raise ValueError(f"Vendor '{self.key}' has no signatures")
        object.__setattr__(self, "signatures", cleaned)

    def matches(self, text: str) -> bool:
        """Check whether any signature occurs in text (case-insensitive)."""
        if not text:
            return False
        lowered = text.lower()
        return any(signature in lowered for signature in self.signatures)


class VendorTable:
    """Immutable, ordered collection of vendor signatures."""

    def __init__(self, vendors: Iterable[VendorSignature]):
        self._vendors: Tuple[VendorSignature, ...] = tuple(vendors)
        keys = [vendor.key for vendor in self._vendors]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise ValueError(f"Duplicate vendor keys: {', '.join(duplicates)}")

    def __iter__(self) -> Iterator[VendorSignature]:
        return iter(self._vendors)

    def __len__(self) -> int:
        return len(self._vendors)

    def __contains__(self, key: object) -> bool:
        return any(vendor.key == key for vendor in self._vendors)

    def __repr__(self) -> str:
        return f"VendorTable({', '.join(self.keys())})"

    def keys(self) -> List[str]:
        return [vendor.key for vendor in self._vendors]

    def get(self, key: str) -> Optional[VendorSignature]:
        for vendor in self._vendors:
            if vendor.key == key:
                return vendor
        return None

    def match(self, text: str) -> List[str]:
        """Return the keys of every vendor whose signature occurs in text."""
        if not text:
            return []
        return [vendor.key for vendor in self._vendors if vendor.matches(text)]

    @classmethod
    def from_dict(cls, data: Dict[str, dict]) -> "VendorTable":
        """Build a table from ``{key: {"label": ..., "signatures": [...]}}``.

        A bare list of signatures is accepted in place of the inner object,
        in which case the key doubles as the label.
        """
        vendors = []
        for key, spec in data.items():
            if isinstance(spec, list):
                label, signatures = key, spec
            else:
                label = spec.get("label", key)
                signatures = spec.get("signatures", [])
            vendors.append(VendorSignature(key=key, label=label, signatures=tuple(signatures)))
        return cls(vendors)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "VendorTable":
        """Load a vendor table from a JSON file.

        Args:
            path: Path to a JSON object in the from_dict layout,
                optionally nested under a top-level "vendors" key

        Returns:
            VendorTable with the vendors in file order
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        table = cls.from_dict(data.get("vendors", data))
        logger.info(f"Loaded {len(table)} vendor signatures from {path}")
        return table

    def to_dict(self) -> Dict[str, dict]:
        return {
            vendor.key: {"label": vendor.label, "signatures": list(vendor.signatures)}
            for vendor in self._vendors
        }


DEFAULT_VENDOR_TABLE = VendorTable([
    VendorSignature("lotame", "Lotame", ("lotame.com", "crwdcntrl.net", "lotame")),
    VendorSignature("chartbeat", "Chartbeat", ("chartbeat.com", "chartbeat.net", "chartbeat")),
    VendorSignature("izooto", "Izooto", ("izooto.com", "izooto")),
    VendorSignature("vdo_io", "VDO.AI", ("vdo.ai",)),
])
