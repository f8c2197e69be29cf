"""Result shapes and merge primitives for composed driver results.

A composed operation returns one of three shapes:

- :class:`SingleRecord` - one flat record (patron profile)
- :class:`RecordList` - a list of records, optionally partitioned into named
  subfields such as ``holdings`` and ``electronic_holdings``
- :class:`NestedRecordList` - one list of records per requested id
  (batch status)

The main driver's result decides the cardinality and order of the merged
result. Support records only add or replace fields of matching main records.
Which side keeps a colliding field is the explicit :class:`Precedence`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .protocols import Record

SupportMap = Dict[Any, Record]


class Precedence(Enum):
    """Which side keeps a field present in both records."""

    MAIN_WINS = "main_wins"
    SUPPORT_WINS = "support_wins"


@dataclass(frozen=True)
class SingleRecord:
    """One record per driver, merged field by field (main wins)."""


@dataclass(frozen=True)
class RecordList:
    """Records joined on a per-driver merge key (support wins)."""

    subfields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NestedRecordList:
    """Groups of records joined first on ``base_key``, then per record."""

    base_key: str
    subfields: Tuple[str, ...] = ()


ResultShape = Union[SingleRecord, RecordList, NestedRecordList]


def overlay(main: Mapping[str, Any], support: Mapping[str, Any], precedence: Precedence) -> Record:
    """Return a copy of ``main`` with the fields of ``support`` merged in.

    With ``MAIN_WINS`` a support value only fills fields that ``main`` lacks
    or holds as None. With ``SUPPORT_WINS`` support values replace main values.
    """

    merged = dict(main)
    for key, value in support.items():
        if precedence is Precedence.SUPPORT_WINS or merged.get(key) is None:
            merged[key] = value
    return merged


def select_fields(record: Mapping[str, Any], keys: Iterable[str]) -> Record:
    """Keep only the fields of ``record`` named in ``keys``."""

    wanted = set(keys)
    return {k: v for k, v in record.items() if k in wanted}


def join_value(record: Mapping[str, Any], key: str) -> Any:
    """Return the value ``record`` can be joined on, or None.

    Empty, missing and unhashable values (lists, tables) cannot be joined.
    """

    value = record.get(key)
    if not value:
        return None
    try:
        hash(value)
    except TypeError:
        return None
    return value


def extract_key(records: Iterable[Mapping[str, Any]], key: str) -> SupportMap:
    """Index ``records`` by their ``key`` field.

    Records without a joinable key are left out. When two records share a
    key the later one is kept.
    """

    indexed: SupportMap = {}
    for record in records:
        value = join_value(record, key)
        if value is not None:
            indexed[value] = dict(record)
    return indexed


def has_subfields(result: Any, subfields: Sequence[str]) -> bool:
    return isinstance(result, Mapping) and any(name in result for name in subfields)


def extract_result_subfields(result: Any, subfields: Sequence[str]) -> List[Any]:
    """Flatten a subfield-partitioned result into one list of records.

    Results without any of ``subfields`` are returned as a list as-is.
    """

    if has_subfields(result, subfields):
        flattened: List[Any] = []
        for name in subfields:
            flattened.extend(result.get(name) or [])
        return flattened
    if isinstance(result, (list, tuple)):
        return list(result)
    return []


def build_support_map(
    result: Any,
    merge_key: str,
    support_keys: Sequence[str],
    subfields: Sequence[str] = (),
    extra_keys: Sequence[str] = (),
) -> SupportMap:
    """Reduce a support driver's records to their support keys, indexed by ``merge_key``."""

    used_keys = [merge_key, *extra_keys, *support_keys]
    filtered = [
        select_fields(record, used_keys)
        for record in extract_result_subfields(result, subfields)
        if isinstance(record, Mapping)
    ]
    return extract_key(filtered, merge_key)


def merge_records(
    main_records: Optional[Iterable[Mapping[str, Any]]],
    support_maps: Mapping[str, Optional[SupportMap]],
    merge_keys: Mapping[str, str],
    precedence: Precedence = Precedence.SUPPORT_WINS,
) -> List[Any]:
    """Join every main record against each support map, in support order."""

    merged = []
    for entry in main_records or []:
        if not isinstance(entry, Mapping):
            merged.append(entry)
            continue
        entry = dict(entry)
        for driver_name, support in support_maps.items():
            merge_key = merge_keys.get(driver_name)
            value = join_value(entry, merge_key) if merge_key else None
            if value is None or not support:
                continue
            match = support.get(value)
            if match:
                entry = overlay(entry, match, precedence)
        merged.append(entry)
    return merged


def merge_in_subfields(
    main_result: Any,
    support_maps: Mapping[str, Optional[SupportMap]],
    merge_keys: Mapping[str, str],
    subfields: Sequence[str] = (),
    precedence: Precedence = Precedence.SUPPORT_WINS,
) -> Any:
    """Merge into each subfield list of ``main_result``, or into the whole list."""

    if main_result is None:
        return None
    if has_subfields(main_result, subfields):
        merged = dict(main_result)
        for name in subfields:
            if name in merged:
                merged[name] = merge_records(merged[name], support_maps, merge_keys, precedence)
        return merged
    return merge_records(main_result, support_maps, merge_keys, precedence)


def merge_single(
    main_result: Any,
    support_results: Iterable[Tuple[Any, Sequence[str]]],
) -> Any:
    """Fold filtered support records into one main record; main fields win.

    ``support_results`` holds ``(record, support_keys)`` pairs in configured
    order, so an earlier support driver fills a gap before a later one.
    """

    if not isinstance(main_result, Mapping):
        return main_result
    merged = dict(main_result)
    for result, support_keys in support_results:
        if isinstance(result, Mapping):
            merged = overlay(merged, select_fields(result, support_keys), Precedence.MAIN_WINS)
    return merged


def merge_list(
    main_result: Any,
    support_results: Mapping[str, Any],
    merge_keys: Mapping[str, str],
    support_keys: Mapping[str, Sequence[str]],
    subfields: Sequence[str] = (),
) -> Any:
    """Merge flat (optionally partitioned) record lists on per-driver merge keys."""

    support_maps = {
        name: build_support_map(result, merge_keys[name], support_keys.get(name, ()), subfields)
        for name, result in support_results.items()
    }
    return merge_in_subfields(main_result, support_maps, merge_keys, subfields)


def _first_record(group: Any, subfields: Sequence[str]) -> Optional[Mapping[str, Any]]:
    records = extract_result_subfields(group, subfields)
    if records and isinstance(records[0], Mapping):
        return records[0]
    return None


def _locate(maps: Sequence[SupportMap], base_key: str, base_value: Any) -> Optional[SupportMap]:
    """Find the support group whose records carry ``base_value``."""

    for support in maps:
        if support and next(iter(support.values())).get(base_key) == base_value:
            return support
    return None


def merge_nested(
    main_result: Any,
    support_results: Mapping[str, Any],
    base_key: str,
    merge_keys: Mapping[str, str],
    support_keys: Mapping[str, Sequence[str]],
    subfields: Sequence[str] = (),
) -> Optional[List[Any]]:
    """Merge lists of record groups, pairing groups on ``base_key``.

    A main group is matched to a support group by the ``base_key`` of its
    first record; records inside the pair are then merged like
    :func:`merge_list`. A main group that is empty, or whose first record has
    no ``base_key`` value, is dropped from the result.
    """

    if main_result is None:
        return None
    grouped = {
        name: [
            build_support_map(
                group, merge_keys[name], support_keys.get(name, ()), subfields, (base_key,)
            )
            for group in (result or [])
        ]
        for name, result in support_results.items()
    }
    merged = []
    for group in main_result or []:
        first = _first_record(group, subfields)
        base_value = first.get(base_key) if first else None
        if not base_value:
            continue
        located = {name: _locate(maps, base_key, base_value) for name, maps in grouped.items()}
        merged.append(merge_in_subfields(group, located, merge_keys, subfields))
    return merged


__all__ = [
    "Precedence",
    "SingleRecord",
    "RecordList",
    "NestedRecordList",
    "ResultShape",
    "overlay",
    "select_fields",
    "join_value",
    "extract_key",
    "extract_result_subfields",
    "build_support_map",
    "merge_records",
    "merge_in_subfields",
    "merge_single",
    "merge_list",
    "merge_nested",
]
