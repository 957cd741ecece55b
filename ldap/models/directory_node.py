from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Node:
    """
    Organizational container discovered by name.

    Only the two attributes the report needs are kept; everything else an
    ldap3 Entry carries is dropped at the directory boundary.
    """
    distinguished_name: str
    name: str

    @classmethod
    def from_entry(cls, entry: Any, naming_attribute: str = "name") -> "Node":
        """Build a Node from an ldap3 Entry."""
        name = ""
        if naming_attribute in entry.entry_attributes:
            value = getattr(entry, naming_attribute).value
            if isinstance(value, list):
                value = value[0] if value else ""
            name = str(value) if value is not None else ""
        if not name:
            # Fall back to the leading RDN label, e.g. "ADM" in "OU=ADM,OU=Office1,..."
            name = entry.entry_dn.split(",", 1)[0].split("=", 1)[-1]
        return cls(distinguished_name=entry.entry_dn, name=name)

    @property
    def dedup_key(self) -> str:
        return self.distinguished_name.lower()
