"""Polling mode: periodically point configured A records at the public IP."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from cfdyndns.cloudflare import CloudflareClient, CloudflareError, Record
from cfdyndns.common import is_not_blank, parse_bool, parse_int
from cfdyndns.config import ConfigError, Environment

logger = logging.getLogger(__name__)


@dataclass
class PollerContext:
    """Poller settings together with its running state."""

    domains: list[str]
    interval: int
    max_failures: int
    cooldown: int
    can_create: bool
    ttl: int
    proxied: bool
    comment: str

    records: list[Record] = field(default_factory=list)
    current_ip: str = ""
    last_update: float | None = None
    failures: int = 0
    last_failure: float | None = None

    def add_failure(self) -> None:
        """Count one more failure and remember when it happened."""
        self.failures += 1
        self.last_failure = time.monotonic()

    def reset_failures(self) -> None:
        """Clear the failure count, restarting the cooldown period."""
        self.failures = 0
        self.last_failure = time.monotonic()
        logger.debug("Failures reset")


def validate_ctx(ctx: PollerContext) -> None:
    """Raise ConfigError if the poller settings are unusable."""
    if not ctx.domains:
        raise ConfigError("Configure at least 1 domain to update")
    if ctx.interval <= 0:
        raise ConfigError("Interval must be greater than 0")
    if ctx.ttl < 60 and ctx.ttl != 1:
        raise ConfigError("Ttl must be equal to 1 or at least 60")


def get_or_create_record(
    ctx: PollerContext, client: CloudflareClient, domain: str
) -> Record:
    """Return the A record of ``domain``, creating it if allowed."""
    search_error: CloudflareError | None = None
    try:
        record = client.get_first_record(domain, "A")
    except CloudflareError as exc:
        record = None
        search_error = exc
    if record is not None:
        return record
    if not ctx.can_create:
        raise CloudflareError(
            f"Record '{domain}' not found and cannot create a new one"
        )
    if search_error is not None:
        logger.warning("Error while searching for %s: %s", domain, search_error)
    new_record = Record(
        name=domain,
        type="A",
        content=ctx.current_ip,
        ttl=ctx.ttl,
        proxied=ctx.proxied,
        comment=ctx.comment,
    )
    try:
        created = client.create_record(new_record)
    except CloudflareError as exc:
        raise CloudflareError(f"get_or_create_record: {exc}") from exc
    logger.info("Created record: %s", domain)
    return created


def build_ctx(env: Environment, client: CloudflareClient) -> PollerContext:
    """Build the poller context, resolving or creating every configured record."""
    ctx = PollerContext(
        domains=[d for d in env.domains.split(",") if is_not_blank(d)],
        interval=parse_int(env.interval, "interval"),
        max_failures=parse_int(env.max_fails, "max failures"),
        cooldown=parse_int(env.cooldown, "cooldown"),
        can_create=parse_bool(env.can_create),
        ttl=parse_int(env.ttl, "ttl"),
        proxied=parse_bool(env.proxied),
        comment=env.comment,
    )
    validate_ctx(ctx)

    try:
        ctx.current_ip = client.get_current_ip()
    except CloudflareError as exc:
        raise CloudflareError(f"Cannot retrieve current public ip: {exc}") from exc

    for domain in ctx.domains:
        try:
            ctx.records.append(get_or_create_record(ctx, client, domain))
        except CloudflareError as exc:
            raise CloudflareError(f"build_ctx: {exc}") from exc

    logger.info("Poller context successfully built")
    return ctx


def routine(ctx: PollerContext, client: CloudflareClient) -> bool:
    """Run one polling round; return False when the poller should stop."""
    now = time.monotonic()
    cooled_down = ctx.last_failure is None or now - ctx.last_failure > ctx.cooldown
    if ctx.cooldown > 0 and cooled_down:
        ctx.reset_failures()
    elif ctx.max_failures >= 0 and ctx.failures > ctx.max_failures:
        logger.warning("Reached maximum number of failures, aborting")
        return False

    try:
        ip = client.get_current_ip()
    except CloudflareError as exc:
        ctx.add_failure()
        logger.debug("%s", exc)
        return True

    for index, record in enumerate(ctx.records):
        try:
            updated = client.update_record(record.name, record.id, ip)
        except CloudflareError as exc:
            ctx.add_failure()
            logger.debug("%s", exc)
            continue
        ctx.current_ip = ip
        ctx.last_update = time.monotonic()
        ctx.records[index] = updated
        logger.info("Record %s updated with new ip: %s", updated.name, ip)

    return True


def run(env: Environment, client: CloudflareClient | None = None) -> None:
    """Poll every interval until too many failures accumulate."""
    if client is None:
        client = CloudflareClient.from_env(env)
    ctx = build_ctx(env, client)
    logger.info("Starting POLLER mode")
    while True:
        time.sleep(ctx.interval)
        if not routine(ctx, client):
            return