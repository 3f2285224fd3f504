from datetime import datetime, timezone

import shortuuid

_ORDER_SUFFIX_ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"


def generate_shortuuid() -> str:
    return shortuuid.uuid()


def generate_order_number(now: datetime | None = None) -> str:
    """PO-<yyyymmdd>-<6 upper-case chars>, used when the caller omits one."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d")
    suffix = shortuuid.ShortUUID(alphabet=_ORDER_SUFFIX_ALPHABET).random(length=6)
    return f"PO-{stamp}-{suffix}"
