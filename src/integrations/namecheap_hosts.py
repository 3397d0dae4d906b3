"""Host-record parsing and diffing for the Namecheap DNS XML API.

Namecheap has no call that deletes a single host record; ``setHosts``
replaces the whole set. Removing a subdomain therefore means reading the
full list, dropping the records that belong to the subdomain and
resubmitting the rest, renumbered from 1.
"""

import re
from dataclasses import dataclass
from typing import NamedTuple

_HOST_TAG = re.compile(r"<host\b[^>]*/>", re.IGNORECASE)
_HOST_OPEN = re.compile(r"<host\b", re.IGNORECASE)
_STATUS = re.compile(r'<ApiResponse\b[^>]*\bStatus="([^"]*)"')
_ERROR = re.compile(r"<Error\b([^>]*)>([^<]*)</Error>")


class SubdomainParts(NamedTuple):
    """``label.sld.tld`` split for the getHosts/setHosts calls."""

    label: str
    sld: str
    tld: str


@dataclass(frozen=True)
class HostRecord:
    """One DNS host record as reported by getHosts."""

    host_id: str
    name: str
    type: str
    address: str
    ttl: str | None = None
    mx_priority: str | None = None


def parse_subdomain(domain: str) -> SubdomainParts:
    """Split ``label.sld.tld`` (the TLD may itself contain dots).

    Raises:
        ValueError: fewer than three segments
    """
    parts = domain.strip().rstrip(".").split(".")
    if len(parts) < 3 or not all(parts):
        raise ValueError(
            f"Invalid subdomain format: {domain}. Expected: subdomain.example.com"
        )
    return SubdomainParts(parts[0], parts[1], ".".join(parts[2:]))


def _attribute(tag: str, name: str) -> str | None:
    # \b keeps FriendlyName="..." from matching Name="..."
    match = re.search(rf'\b{name}="([^"]*)"', tag)
    return match.group(1) if match else None


def parse_host_records(xml: str) -> list[HostRecord]:
    """Extract every complete ``<host .../>`` record, attribute order free.

    Tags missing HostId, Name, Type or Address are skipped; compare the
    result against ``count_host_tags`` before resubmitting.
    """
    records = []
    for tag in _HOST_TAG.findall(xml):
        fields = {
            key: _attribute(tag, key)
            for key in ("HostId", "Name", "Type", "Address")
        }
        if any(value is None for value in fields.values()):
            continue
        records.append(
            HostRecord(
                host_id=fields["HostId"],
                name=fields["Name"],
                type=fields["Type"],
                address=fields["Address"],
                ttl=_attribute(tag, "TTL"),
                mx_priority=_attribute(tag, "MXPref") or _attribute(tag, "MXPriority"),
            )
        )
    return records


def count_host_tags(xml: str) -> int:
    """Number of ``<host`` elements in the response, parsed or not."""
    return len(_HOST_OPEN.findall(xml))


def belongs_to_subdomain(record: HostRecord, label: str) -> bool:
    """``label`` itself or any child such as ``label.www``."""
    return record.name == label or record.name.startswith(f"{label}.")


def partition_records(
    records: list[HostRecord], label: str
) -> tuple[list[HostRecord], list[HostRecord]]:
    """Return ``(matching, remaining)`` in record order."""
    matching = [r for r in records if belongs_to_subdomain(r, label)]
    remaining = [r for r in records if not belongs_to_subdomain(r, label)]
    return matching, remaining


def build_set_hosts_params(records: list[HostRecord]) -> dict[str, str]:
    """Numbered setHosts fields for ``records``, starting at 1."""
    params: dict[str, str] = {}
    for n, record in enumerate(records, start=1):
        params[f"HostName{n}"] = record.name
        params[f"RecordType{n}"] = record.type
        params[f"Address{n}"] = record.address
        if record.mx_priority and record.type.upper() == "MX":
            params[f"MXPriority{n}"] = record.mx_priority
        if record.ttl:
            params[f"TTL{n}"] = record.ttl
    return params


def api_status(xml: str) -> str | None:
    """``Status`` attribute of the ApiResponse element, if present."""
    match = _STATUS.search(xml)
    return match.group(1) if match else None


def api_errors(xml: str) -> list[str]:
    """``"<Number>: <description>"`` for each Error element."""
    errors = []
    for attrs, description in _ERROR.findall(xml):
        number = _attribute(attrs, "Number")
        text = description.strip()
        errors.append(f"{number}: {text}" if number else text)
    return errors
