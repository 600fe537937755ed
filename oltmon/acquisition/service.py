"""ONU acquisition service: orchestrates profile lookup, SNMP, decoding and caching."""

from __future__ import annotations

import asyncio
import math
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from oltmon.acquisition.coalescer import RequestCoalescer
from oltmon.acquisition.decoders import (
    FieldDecoders,
    decode_offline_reason,
    decode_optical_distance,
    decode_phase_state,
    decode_status,
    decode_text,
    extract_onu_id,
    format_duration,
    parse_timestamp,
)
from oltmon.acquisition.models import (
    FreeSlot,
    TerminalDetail,
    TerminalPage,
    TerminalSerial,
    TerminalSummary,
)
from oltmon.acquisition.profiles import OidProfile, OidProfileResolver, OnuField
from oltmon.acquisition.reconciler import free_slots as compute_free_slots
from oltmon.cache.base import BaseCache
from oltmon.config import AppConfig
from oltmon.exceptions import (
    CacheUnavailable,
    CacheWriteFailed,
    DecodeError,
    ProtocolError,
    TerminalNotFound,
)
from oltmon.transport.base import BaseSnmpTransport, SnmpPdu

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

_SUMMARY_LIST = TypeAdapter(list[TerminalSummary])
_FREE_SLOT_LIST = TypeAdapter(list[FreeSlot])


def port_cache_key(board: int, pon: int) -> str:
    return f"onu_board_{board}_pon_{pon}"


def free_slots_cache_key(board: int, pon: int) -> str:
    return f"onu_board_{board}_pon_{pon}_empty_onu_id"


def normalize_paging(page: int, page_size: int) -> tuple[int, int]:
    """Clamp page to >= 1 and page_size to 1..MAX_PAGE_SIZE (non-positive -> default)."""
    if page < 1:
        page = 1
    if page_size <= 0:
        page_size = DEFAULT_PAGE_SIZE
    elif page_size > MAX_PAGE_SIZE:
        page_size = MAX_PAGE_SIZE
    return page, page_size


class AcquisitionService:
    """Read ONU inventory and telemetry for one OLT.

    ``list_port`` and ``free_slots`` are served from the cache for ``cache_ttl``
    seconds; everything else goes to the device. Every operation is coalesced
    per key, and single-field GETs are coalesced per OID.
    """

    def __init__(
        self,
        resolver: OidProfileResolver,
        transport: BaseSnmpTransport,
        cache: BaseCache,
        decoders: FieldDecoders | None = None,
        coalescer: RequestCoalescer | None = None,
        cache_ttl: int = 300,
        clock_offset: timedelta = timedelta(hours=7),
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.resolver = resolver
        self.transport = transport
        self.cache = cache
        self.decoders = decoders or FieldDecoders()
        self.coalescer = coalescer or RequestCoalescer()
        self.cache_ttl = cache_ttl
        self.clock_offset = clock_offset
        self._now = now

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "AcquisitionService":
        """Wire the pysnmp transport and Redis cache from the application config."""
        from oltmon.cache.redis_store import RedisCache
        from oltmon.transport.snmp import SnmpTransport

        transport = SnmpTransport(
            cfg.snmp.host,
            community=cfg.snmp.community,
            port=cfg.snmp.port,
            timeout=cfg.snmp.timeout,
            retries=cfg.snmp.retries,
        )
        decoders = FieldDecoders(
            power_scale=cfg.olt.power_scale,
            power_offset=cfg.olt.power_offset,
            power_ceiling=cfg.olt.power_ceiling,
        )
        return cls(
            OidProfileResolver.from_settings(cfg.olt),
            transport,
            RedisCache.from_settings(cfg.redis),
            decoders=decoders,
            cache_ttl=cfg.cache_ttl,
            clock_offset=timedelta(hours=cfg.olt.clock_offset_hours),
        )

    async def close(self) -> None:
        await self.cache.close()

    # ── Public operations ─────────────────────────────────────────────

    async def list_port(self, board: int, pon: int) -> list[TerminalSummary]:
        """All ONUs on a PON port with name, type, serial, rx power and status, sorted by id.

        Raises:
            InvalidCoordinate: unknown board/pon.
            ProtocolError: the identity walk failed.
        """
        profile = self.resolver.resolve(board, pon)
        return await self._shared(f"onu_info:{board}:{pon}", lambda: self._list_port(profile))

    async def get_terminal(self, board: int, pon: int, onu_id: int) -> TerminalDetail:
        """Full detail record for one ONU, always read live from the device.

        Raises:
            InvalidCoordinate: unknown board/pon or onu id outside 1..128.
            ProtocolError: the identity walk failed.
            TerminalNotFound: nothing registered under ``onu_id``.
        """
        profile = self.resolver.resolve(board, pon)
        self.resolver.validate_onu_id(onu_id, board, pon)
        return await self._shared(
            f"onu_detail:{board}:{pon}:{onu_id}", lambda: self._get_terminal(profile, onu_id)
        )

    async def free_slots(self, board: int, pon: int) -> list[FreeSlot]:
        """Unregistered ONU ids on a port, ascending."""
        profile = self.resolver.resolve(board, pon)
        return await self._shared(f"empty_onu_id:{board}:{pon}", lambda: self._free_slots(profile))

    async def list_ids_with_serial(self, board: int, pon: int) -> list[TerminalSerial]:
        """Registered ids with their serial numbers. Ids whose serial cannot be read are left out."""
        profile = self.resolver.resolve(board, pon)
        return await self._shared(f"onu_serial:{board}:{pon}", lambda: self._list_ids_with_serial(profile))

    async def refresh_free_slots(self, board: int, pon: int) -> list[FreeSlot]:
        """Recompute free slots and overwrite the cached copy.

        Raises:
            CacheWriteFailed: the new list could not be stored.
        """
        profile = self.resolver.resolve(board, pon)
        return await self._shared(
            f"update_empty_onu_id:{board}:{pon}", lambda: self._refresh_free_slots(profile)
        )

    async def list_port_paged(self, board: int, pon: int, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> TerminalPage:
        """One page of a port listing; only the ONUs on the page are enriched."""
        profile = self.resolver.resolve(board, pon)
        page, page_size = normalize_paging(page, page_size)
        return await self._shared(
            f"onu_page:{board}:{pon}:{page}:{page_size}",
            lambda: self._list_port_paged(profile, page, page_size),
        )

    # ── Implementations (run once per coalesced key) ──────────────────

    async def _list_port(self, profile: OidProfile) -> list[TerminalSummary]:
        board, pon = profile.coordinate.board, profile.coordinate.pon
        key = port_cache_key(board, pon)

        cached = await self._cache_read(key, _SUMMARY_LIST)
        if cached is not None:
            logger.info(f"Served board {board} pon {pon} listing from cache ({key})")
            return cached

        logger.info(f"Walking ONU identities on board {board} pon {pon}")
        identities = await self._walk_identities(profile)
        summaries = [await self._summary(profile, onu_id, pdu) for onu_id, pdu in sorted(identities.items())]

        await self._cache_write(key, _SUMMARY_LIST, summaries)
        return summaries

    async def _get_terminal(self, profile: OidProfile, onu_id: int) -> TerminalDetail:
        board, pon = profile.coordinate.board, profile.coordinate.pon
        logger.info(f"Reading ONU detail board {board} pon {pon} onu {onu_id}")

        identities = await self._walk_identities(profile, onu_id)
        pdu = identities.get(onu_id)
        if pdu is None:
            raise TerminalNotFound(f"no ONU {onu_id} on board {board} pon {pon}")

        summary = await self._summary(profile, onu_id, pdu)
        (
            tx_power,
            ip_address,
            description,
            last_online,
            last_offline,
            offline_reason,
            optical_distance,
            phase_state,
        ) = await asyncio.gather(
            self._read(profile, OnuField.TX_POWER, onu_id, self.decoders.power),
            self._read(profile, OnuField.IP_ADDRESS, onu_id, decode_text),
            self._read(profile, OnuField.DESCRIPTION, onu_id, decode_text),
            self._read(profile, OnuField.LAST_ONLINE, onu_id, self.decoders.timestamp),
            self._read(profile, OnuField.LAST_OFFLINE, onu_id, self.decoders.timestamp),
            self._read(profile, OnuField.OFFLINE_REASON, onu_id, decode_offline_reason),
            self._read(profile, OnuField.OPTICAL_DISTANCE, onu_id, decode_optical_distance),
            self._read(profile, OnuField.PHASE_STATE, onu_id, decode_phase_state),
        )

        detail = TerminalDetail(
            **summary.model_dump(),
            tx_power=tx_power,
            ip_address=ip_address or "",
            description=description or "",
            last_online=last_online or "",
            last_offline=last_offline or "",
            offline_reason=offline_reason or "",
            optical_distance=optical_distance,
            phase_state=phase_state or "",
        )
        self._derive_durations(detail)
        return detail

    async def _free_slots(self, profile: OidProfile) -> list[FreeSlot]:
        board, pon = profile.coordinate.board, profile.coordinate.pon
        key = free_slots_cache_key(board, pon)

        cached = await self._cache_read(key, _FREE_SLOT_LIST)
        if cached is not None:
            logger.info(f"Served board {board} pon {pon} free slots from cache ({key})")
            return cached

        slots = await self._compute_free_slots(profile)
        await self._cache_write(key, _FREE_SLOT_LIST, slots)
        return slots

    async def _list_ids_with_serial(self, profile: OidProfile) -> list[TerminalSerial]:
        board, pon = profile.coordinate.board, profile.coordinate.pon
        identities = await self._walk_identities(profile)

        result: list[TerminalSerial] = []
        for onu_id in sorted(identities):
            serial = await self._read(profile, OnuField.SERIAL_NUMBER, onu_id, self.decoders.serial)
            if serial is None:
                continue
            result.append(TerminalSerial(board=board, pon=pon, onu_id=onu_id, serial_number=serial))
        return result

    async def _refresh_free_slots(self, profile: OidProfile) -> list[FreeSlot]:
        board, pon = profile.coordinate.board, profile.coordinate.pon
        key = free_slots_cache_key(board, pon)
        slots = await self._compute_free_slots(profile)
        try:
            await self.cache.set(key, self.cache_ttl, _FREE_SLOT_LIST.dump_json(slots).decode())
        except CacheWriteFailed as e:
            logger.error(f"Failed to refresh free slots for board {board} pon {pon}: {e}")
            raise
        logger.info(f"Refreshed free slots cache {key} ({len(slots)} free)")
        return slots

    async def _list_port_paged(self, profile: OidProfile, page: int, page_size: int) -> TerminalPage:
        identities = await self._walk_identities(profile)
        ids = sorted(identities)
        total = len(ids)

        start = min((page - 1) * page_size, total)
        window = ids[start : start + page_size]
        items = [await self._summary(profile, onu_id, identities[onu_id]) for onu_id in window]

        return TerminalPage(
            items=items,
            total_count=total,
            page=page,
            page_size=page_size,
            page_count=math.ceil(total / page_size),
        )

    # ── Helpers ───────────────────────────────────────────────────────

    async def _shared(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Coalesce on ``key`` and hand every caller its own copy of the result."""
        result = await self.coalescer.do(key, fn)
        if isinstance(result, list):
            return [item.model_copy(deep=True) for item in result]
        return result.model_copy(deep=True)

    async def _walk_identities(self, profile: OidProfile, onu_id: int | None = None) -> dict[int, SnmpPdu]:
        """Walk the name table (or one instance of it) and key every row by ONU id."""
        found: dict[int, SnmpPdu] = {}

        def _visit(pdu: SnmpPdu) -> None:
            try:
                found[extract_onu_id(pdu.name)] = pdu
            except DecodeError as e:
                logger.warning(f"Skipping identity row {pdu.name}: {e}")

        await self.transport.walk(profile.identity_oid(onu_id), _visit)
        return found

    async def _compute_free_slots(self, profile: OidProfile) -> list[FreeSlot]:
        board, pon = profile.coordinate.board, profile.coordinate.pon
        logger.info(f"Walking ONU identities for free slots on board {board} pon {pon}")
        identities = await self._walk_identities(profile)
        return compute_free_slots(board, pon, identities)

    async def _summary(self, profile: OidProfile, onu_id: int, pdu: SnmpPdu) -> TerminalSummary:
        try:
            name = decode_text(pdu.value)
        except DecodeError as e:
            logger.warning(f"ONU {onu_id} name: {e}")
            name = ""

        onu_type, serial, rx_power, status = await asyncio.gather(
            self._read(profile, OnuField.TYPE, onu_id, decode_text),
            self._read(profile, OnuField.SERIAL_NUMBER, onu_id, self.decoders.serial),
            self._read(profile, OnuField.RX_POWER, onu_id, self.decoders.power),
            self._read(profile, OnuField.STATUS, onu_id, decode_status),
        )
        return TerminalSummary(
            board=profile.coordinate.board,
            pon=profile.coordinate.pon,
            onu_id=onu_id,
            name=name,
            onu_type=onu_type or "",
            serial_number=serial or "",
            rx_power=rx_power,
            status=status or "",
        )

    async def _read(self, profile: OidProfile, field: OnuField, onu_id: int, decode: Callable[[Any], T]) -> T | None:
        """GET and decode one optional field; failures are logged and yield None."""
        oid = profile.oid(field, onu_id)
        try:
            raw = await self.coalescer.do(f"oid:{oid}", lambda: self.transport.get(oid))
            return decode(raw)
        except (ProtocolError, DecodeError) as e:
            logger.warning(f"ONU {profile.coordinate.board}/{profile.coordinate.pon}/{onu_id} {field.name.lower()}: {e}")
            return None

    def _derive_durations(self, detail: TerminalDetail) -> None:
        try:
            online = parse_timestamp(detail.last_online)
        except DecodeError:
            return

        uptime = self._now() - online + self.clock_offset
        detail.uptime_seconds = max(int(uptime.total_seconds()), 0)
        detail.uptime = format_duration(detail.uptime_seconds)

        try:
            offline = parse_timestamp(detail.last_offline)
        except DecodeError:
            return
        down = online - offline
        detail.last_down_duration_seconds = max(int(down.total_seconds()), 0)
        detail.last_down_duration = format_duration(detail.last_down_duration_seconds)

    async def _cache_read(self, key: str, adapter: TypeAdapter[list[Any]]) -> list[Any] | None:
        try:
            payload = await self.cache.get(key)
        except CacheUnavailable as e:
            logger.warning(f"Cache read {key} failed, treating as miss: {e}")
            return None
        if payload is None:
            return None
        try:
            return adapter.validate_json(payload)
        except ValidationError as e:
            logger.warning(f"Discarding malformed cache entry {key}: {e}")
            return None

    async def _cache_write(self, key: str, adapter: TypeAdapter[list[Any]], value: list[Any]) -> None:
        try:
            await self.cache.set(key, self.cache_ttl, adapter.dump_json(value).decode())
        except CacheWriteFailed as e:
            logger.error(f"Cache write {key} failed: {e}")
            return
        logger.info(f"Cached {len(value)} entries under {key} for {self.cache_ttl}s")
