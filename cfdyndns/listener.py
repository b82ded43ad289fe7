"""HTTP listener that updates A records when a client calls /update."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

from cfdyndns.cloudflare import CloudflareClient, CloudflareError
from cfdyndns.common import is_blank, parse_int
from cfdyndns.config import ENV_PASSWORD, ENV_USERNAME, ConfigError, Environment

logger = logging.getLogger(__name__)

PARAM_HOSTNAME = "hostname"
UPDATE_PATH = "/update"
AUTHENTICATE_HEADER = 'Basic realm="restricted", charset="UTF-8"'
_CREDENTIAL_SEPARATOR = ":"


@dataclass
class ListenerContext:
    """Settings of the listener: where to bind and who may call it."""

    address: str
    port: int
    credentials: dict[str, str] = field(default_factory=dict)

    def compare_credentials(self, username: str, password: str) -> bool:
        """Return True if the username is known and the password matches."""
        expected = self.credentials.get(username)
        return expected is not None and expected == password


def build_ctx(env: Environment) -> ListenerContext:
    """Build and validate the listener settings from configuration."""
    if is_blank(env.username):
        raise ConfigError(f"Missing env var: {ENV_USERNAME}")
    if is_blank(env.password):
        raise ConfigError(f"Missing env var: {ENV_PASSWORD}")
    ctx = ListenerContext(
        address=env.address,
        port=parse_int(env.port, "port"),
        credentials={env.username: env.password},
    )
    validate_ctx(ctx)
    return ctx


def validate_ctx(ctx: ListenerContext) -> None:
    """Raise ConfigError if the port or address is unusable."""
    if ctx.port <= 0:
        raise ConfigError("Port must be greater than 0")
    if ctx.port >= 65536:
        raise ConfigError("Port must be lower than 65536")
    if is_blank(ctx.address):
        raise ConfigError("Address cannot be blank")


def update_hostnames(client: CloudflareClient, hostnames: list[str]) -> None:
    """Point the A record of every hostname at this host's public IP."""
    ip = client.get_current_ip()
    for domain in hostnames:
        record = client.get_first_record(domain, "A")
        if record is None:
            raise CloudflareError(f"Record {domain} not found")
        client.update_record(domain, record.id, ip)
        logger.info("Record %s updated with new ip %s", domain, ip)


def _parse_basic_auth(header: str | None) -> tuple[str, str] | None:
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, given = decoded.partition(_CREDENTIAL_SEPARATOR)
    if not sep:
        return None
    return username, given


def make_handler(
    ctx: ListenerContext, client: CloudflareClient
) -> type[BaseHTTPRequestHandler]:
    """Return a request handler class serving the /update endpoint."""

    class UpdateHandler(BaseHTTPRequestHandler):
        def _send_text(
            self, status: int, text: str, headers: dict[str, str] | None = None
        ) -> None:
            body = (text + "\n").encode("utf-8")
            self.send_response(status)
            for name, value in (headers or {}).items():
                self.send_header(name, value)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("X-Content-Type-Options", "nosniff")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _send_empty(self) -> None:
            self.send_response(200)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def _handle(self) -> None:
            url = urlsplit(self.path)
            if url.path != UPDATE_PATH:
                self._send_text(404, "404 page not found")
                return

            auth = _parse_basic_auth(self.headers.get("Authorization"))
            if auth is None or not ctx.compare_credentials(*auth):
                username = auth[0] if auth else ""
                logger.warning(
                    "Received invalid credentials for username: '%s'", username
                )
                self._send_text(
                    401,
                    "Unauthorized",
                    {"WWW-Authenticate": AUTHENTICATE_HEADER},
                )
                return

            query = parse_qs(url.query, keep_blank_values=True)
            if PARAM_HOSTNAME not in query:
                logger.warning("Missing %s parameter in request", PARAM_HOSTNAME)
                self._send_text(400, "")
                return

            hostnames = query[PARAM_HOSTNAME]
            try:
                update_hostnames(client, hostnames)
            except CloudflareError as exc:
                logger.error(
                    "Error while updating hostnames %s: %s", hostnames, exc
                )
                self._send_text(500, "Error while updating hostnames")
                return
            self._send_empty()

        do_GET = _handle
        do_POST = _handle
        do_PUT = _handle
        do_PATCH = _handle
        do_DELETE = _handle

        def log_message(self, format: str, *args: object) -> None:
            logger.debug("%s - %s", self.address_string(), format % args)

    return UpdateHandler


def run(env: Environment, client: CloudflareClient | None = None) -> None:
    """Serve the /update endpoint until the server stops."""
    if client is None:
        client = CloudflareClient.from_env(env)
    ctx = build_ctx(env)
    handler = make_handler(ctx, client)
    logger.info("Starting server at %s:%d", ctx.address, ctx.port)
    try:
        with ThreadingHTTPServer((ctx.address, ctx.port), handler) as server:
            server.serve_forever()
    except OSError as exc:
        logger.error("Error: failed to serve: %s", exc)