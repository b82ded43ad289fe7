# cfdyndns

`cfdyndns` keeps Cloudflare DNS `A` records pointed at this machine's public
IP address. It looks up that address through `api.ipify.org` and runs in one of
two modes:

- **POLLER** updates a fixed list of records at a regular interval. It can
  also create records that do not exist yet.
- **LISTENER** runs a small HTTP server with an `/update` endpoint protected
  by HTTP Basic authentication. Routers and other clients call this endpoint
  to trigger an update.

## Installation

```
pip install .
```

## Running

The `cfdyndns` command reads all of its settings from environment variables.
It takes no arguments apart from `--help`.

Poller:

```
MODE=POLLER API_TOKEN=token DOMAINS=home.example.com,vpn.example.com cfdyndns
```

Listener:

```
MODE=LISTENER API_TOKEN=token USERNAME=user PASSWORD=password cfdyndns
```

`python -m cfdyndns.cli` does the same as the `cfdyndns` command.

Messages are logged to standard error at INFO level. If the configuration is
missing or invalid, or a Cloudflare call fails while the poller is starting,
the command prints `Error: <reason>` to standard error and exits with status 1.
Ctrl-C exits with status 130.

## Configuration

A variable that is unset or blank takes its default.

### Common

| Variable    | Required | Default | Meaning                          |
|-------------|----------|---------|----------------------------------|
| `MODE`      | yes      |         | `POLLER` or `LISTENER`           |
| `API_TOKEN` | yes      |         | Cloudflare API token (Bearer)    |
| `TIMEOUT`   | no       | `5`     | HTTP timeout, in whole seconds   |

### Poller mode

| Variable       | Default               | Meaning |
|----------------|-----------------------|---------|
| `DOMAINS`      |                       | Comma-separated names to keep updated. At least one is required. |
| `INTERVAL`     | `60`                  | Seconds between rounds. Must be greater than 0. |
| `MAX_FAILURES` | `-1`                  | Stop once the failure count exceeds this number. A negative value means never stop. |
| `COOLDOWN`     | `-1`                  | Reset the failure count once this many seconds have passed since the last failure. 0 or less disables the reset. |
| `CAN_CREATE`   | `true`                | Create a missing `A` record at startup. |
| `TTL`          | `60`                  | TTL of created records: `1` (automatic) or at least `60`. |
| `PROXIED`      | `false`               | Whether created records are proxied. |
| `COMMENT`      | `Created by cfdyndns` | Comment set on created records. |

Boolean values count as true when they are `1`, `t`, `T`, `TRUE`, `true` or
`True`. Every other value counts as false. Integer values must be plain
decimal numbers.

At startup the poller reads the public IP and then looks up the `A` record of
each domain. If a record is missing, the poller creates it with that IP when
`CAN_CREATE` is true, and otherwise stops with an error. After each interval,
it reads the public IP again and updates every record with it.

### Listener mode

| Variable   | Required | Default   | Meaning                          |
|------------|----------|-----------|----------------------------------|
| `ADDRESS`  | no       | `0.0.0.0` | Address to bind                  |
| `PORT`     | no       | `8080`    | Port to bind, from 1 to 65535    |
| `USERNAME` | yes      |           | Basic-auth user name             |
| `PASSWORD` | yes      |           | Basic-auth password              |

To update one or more hostnames, call the endpoint with any HTTP method:

```
curl -u user:password 'http://localhost:8080/update?hostname=home.example.com&hostname=vpn.example.com'
```

The endpoint answers as follows:

- `200`: every hostname was updated.
- `400`: the `hostname` parameter is missing.
- `401`: the credentials are missing or wrong. The response includes a
  `WWW-Authenticate` header.
- `500`: an update failed. A hostname with no existing `A` record also gives
  `500`, because the listener never creates records.
- `404`: any path other than `/update`.

## Use as a library

```python
from cfdyndns.config import load_environment
from cfdyndns.cloudflare import CloudflareClient

env = load_environment({"MODE": "POLLER", "API_TOKEN": "token"})
client = CloudflareClient.from_env(env)
record = client.get_first_record("home.example.com", "A")
if record is not None:
    client.update_record(record.name, record.id, client.get_current_ip())
```

- `cfdyndns.config.load_environment(environ)` builds an `Environment` from a
  mapping. When `environ` is omitted, it reads `os.environ`.
  `get_env()` loads the process environment once and caches the result.
- `CloudflareClient` loads the account's zones on first use. It picks the
  zone for a name by matching the zone name as a suffix of that name.
  - `get_first_record` returns a `Record`, or `None` when no record matches.
  - `create_record` and `update_record` return the `Record` as the API stored
    it.
- `cfdyndns.poller.run(env, client)` and `cfdyndns.listener.run(env, client)`
  run the two modes with a client you supply.
- `cfdyndns.listener.make_handler(ctx, client)` returns a
  `http.server` request handler class, which you can serve yourself.

Failed API calls raise `cfdyndns.cloudflare.CloudflareError`. Missing or
invalid settings raise `cfdyndns.config.ConfigError`. A setting that is not a
valid integer raises `ValueError`.

## What it does not do

- It handles only `A` records. There is no IPv6 (`AAAA`) support.
- The public IP always comes from `api.ipify.org`.
- The listener serves plain HTTP only. Put it behind a TLS-terminating proxy
  if it is reachable from outside a trusted network.
- The poller updates every record in every round, even when the IP has not
  changed.

## Tests

```
pip install '.[test]'
pytest
```