"""Human-readable formatting of server metrics."""

from .models import ServerRecord, parse_int


def format_speed(speed: int) -> str:
    """Format a line speed given in bits per second."""
    if speed > 1_000_000:
        return f"{speed / 1_000_000:.1f} Mbps"
    if speed > 1_000:
        return f"{speed / 1_000:.0f} Kbps"
    return f"{speed} bps"


def format_traffic(traffic: str) -> str:
    """Format a cumulative traffic counter given in bytes."""
    num = parse_int(traffic)
    if num > 1_000_000_000:
        return f"{num / 1_000_000_000:.1f} GB"
    if num > 1_000_000:
        return f"{num / 1_000_000:.1f} MB"
    return f"{num / 1_000:.1f} KB"


def format_uptime(uptime: int) -> str:
    days, remainder = divmod(uptime, 86400)
    hours = remainder // 3600
    if days > 0:
        return f"{days}d {hours}h"
    return f"{hours}h"


def format_server(record: ServerRecord, index: int | None = None) -> list[str]:
    """Render a server as markdown lines for tool output."""
    title = f"{record.country_long} ({record.country_short}) - {record.hostname}"
    lines = [f"## {index}. {title}" if index is not None else f"## {title}"]
    lines.append(f"**ID:** `{record.server_id}`")
    lines.append(f"**IP:** {record.ip}")
    lines.append(f"**Quality:** {record.quality_tier.value} (score {record.score})")
    lines.append(
        f"**Speed:** {format_speed(record.speed)} | **Ping:** {record.ping or '?'} ms"
        f" | **Uptime:** {format_uptime(record.uptime)}"
    )
    lines.append(
        f"**Sessions:** {record.num_vpn_sessions} | **Total users:** {record.total_users}"
        f" | **Traffic:** {format_traffic(record.total_traffic)}"
    )
    lines.append(f"**Logging:** {record.log_type or 'unknown'} ({record.log_policy.value})")
    if record.operator:
        lines.append(f"**Operator:** {record.operator}")
    if record.message:
        lines.append(f"**Message:** {record.message}")
    lines.append("")
    return lines
