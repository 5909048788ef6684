"""CLI entry point for the peer-to-peer trade client."""

import argparse
import json
import logging

from peerclient.config.loader import (
    config_hash,
    get_config_value,
    load_config,
    load_federation,
    set_config_value,
)
from peerclient.config.schema import ClientConfig, Network
from peerclient.daemon import SyncDaemon, daemon_status, stop_daemon
from peerclient.errors import PeerClientError
from peerclient.federation.registry import CoordinatorRegistry
from peerclient.host import host_from_config
from peerclient.models.order import OrderStatus
from peerclient.reporting.formatters import (
    format_coordinators_text,
    format_order_json,
    format_order_text,
    format_robot_text,
)
from peerclient.session import ClientSession
from peerclient.sync.cancel_eligibility import cancel_options

DEFAULT_CONFIG = "config/client.yaml"

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="peerclient",
        description="Peer-to-peer trade order client",
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG, help="Config YAML path"
    )
    parser.add_argument("--db", default=None, help="SQLite key/value store path")
    parser.add_argument("--federation", default=None, help="Federation JSON file")
    parser.add_argument(
        "--network", choices=[n.value for n in Network], default=None,
        help="Override the configured network",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("coordinators", help="List the federation")
    sub.add_parser("resolve", help="Show the base endpoint in effect")
    sub.add_parser("book", help="List open orders")
    sub.add_parser("limits", help="Show per-currency limits")
    sub.add_parser("info", help="Show coordinator info and version check")

    robot_p = sub.add_parser("robot", help="Bootstrap and show the robot identity")
    robot_p.add_argument("--new", action="store_true", help="Generate a new robot")
    robot_p.add_argument("--profile", action="store_true", help="Force a lookup")
    robot_p.add_argument("--copy-token", action="store_true", help="Copy the token")

    order_p = sub.add_parser("order", help="Fetch an order once")
    order_p.add_argument("order_id", type=int)
    order_p.add_argument("--json", action="store_true", help="JSON output")

    renew_p = sub.add_parser("renew", help="Renew a finished order")
    renew_p.add_argument("order_id", type=int)

    cancel_p = sub.add_parser("cancel-options", help="Cancel affordances for a status")
    cancel_p.add_argument("status", type=int)
    cancel_p.add_argument("--maker", action="store_true")
    cancel_p.add_argument("--taker", action="store_true")

    watch_p = sub.add_parser("watch", help="Follow an order until stopped")
    watch_p.add_argument("order_id", type=int, nargs="?", default=None)

    daemon_p = sub.add_parser("daemon", help="Control a running watch daemon")
    group = daemon_p.add_mutually_exclusive_group(required=True)
    group.add_argument("--stop", action="store_true")
    group.add_argument("--status", action="store_true")

    serve_p = sub.add_parser("serve", help="Serve the local status API")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8765)

    # config show / config set
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    set_p = config_sub.add_parser("set", help="Set a config value")
    set_p.add_argument("keyvalue", help="key=value to set")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config, missing_ok=True)
        if args.db:
            config = config.model_copy(update={"storage_path": args.db})
        if args.federation:
            config = config.model_copy(update={"federation": load_federation(args.federation)})
        if args.network:
            config = config.model_copy(update={"network": Network(args.network)})
        logger.debug("Config hash %s", config_hash(config))

        if args.command == "coordinators":
            return _cmd_coordinators(config)
        elif args.command == "cancel-options":
            return _cmd_cancel_options(args)
        elif args.command == "config":
            return _cmd_config(config, args)
        elif args.command == "daemon":
            return stop_daemon() if args.stop else daemon_status()
        elif args.command == "resolve":
            return _cmd_resolve(config)
        elif args.command in ("book", "limits", "info"):
            return _cmd_market(config, args)
        elif args.command == "robot":
            return _cmd_robot(config, args)
        elif args.command == "order":
            return _cmd_order(config, args)
        elif args.command == "renew":
            return _cmd_renew(config, args)
        elif args.command == "watch":
            return _cmd_watch(config, args)
        elif args.command == "serve":
            return _cmd_serve(config, args)
        else:
            parser.print_help()
            return 1
    except PeerClientError as e:
        logger.error("%s", e)
        print(f"Error: {e}")
        return 1


def _open_session(config: ClientConfig, args) -> ClientSession:
    session = ClientSession(config, host_from_config(config))
    # An explicit --network wins over the stored choice
    if args.network:
        session.network = Network(args.network)
    return session


def _cmd_coordinators(config: ClientConfig) -> int:
    registry = CoordinatorRegistry(config.federation)
    print(format_coordinators_text(registry, config.network, config.active_coordinator))
    return 0


def _cmd_resolve(config: ClientConfig) -> int:
    registry = CoordinatorRegistry(config.federation)
    print(
        registry.resolve_base_url(
            config.network,
            config.active_coordinator,
            config.host.onion_capable,
            config.host.origin,
        )
    )
    return 0


def _cmd_cancel_options(args) -> int:
    status = OrderStatus.parse(args.status)
    options = cancel_options(status, args.maker, args.taker)
    print(f"Action: {options.action.value}")
    print(f"Requires confirmation: {options.requires_confirmation}")
    return 0


def _cmd_market(config: ClientConfig, args) -> int:
    what = args.command
    session = _open_session(config, args)
    session.start(load_market=False, bootstrap=False)
    market = session.market
    if what == "book":
        book = market.load_book()
        print(f"Open orders: {len(book)}")
        for o in book:
            print(f"  #{o.get('id')} type={o.get('type')} currency={o.get('currency')} "
                  f"amount={o.get('amount')} method={o.get('payment_method')}")
    elif what == "limits":
        print(json.dumps(market.load_limits(), indent=2))
    else:
        info = market.load_info()
        if info is None:
            print(f"Error: {market.message}")
            return 1
        check = market.version_check
        if check is not None:
            print(f"Coordinator: {check.coordinator_version} | Client: {check.client_version}")
            if check.update_available:
                print("Client update available")
            elif check.patch_available:
                print("Client patch available")
        print(json.dumps(info.payload, indent=2, default=str))
    return 0 if market.message is None else 1


def _cmd_robot(config: ClientConfig, args) -> int:
    session = _open_session(config, args)
    session.start(load_market=False)
    if args.new:
        session.new_robot()
    elif args.profile:
        session.open_profile()
    if args.copy_token:
        session.copy_token()
    print(format_robot_text(session.robot, session.identity.message))
    session.close()
    return 0 if session.identity.message is None else 1


def _cmd_order(config: ClientConfig, args) -> int:
    session = _open_session(config, args)
    session.start(load_market=False, bootstrap=False)
    session.track_order(args.order_id)
    view = session.orders.view
    print(format_order_json(view) if args.json else format_order_text(view))
    session.close()
    return 0 if view.has_active_data else 1


def _cmd_renew(config: ClientConfig, args) -> int:
    session = _open_session(config, args)
    session.start(load_market=False, bootstrap=False)
    session.track_order(args.order_id)
    new_id = session.renew_order()
    session.close()
    if new_id is None:
        print(f"Renewal failed: {session.orders.view.message or 'no order data'}")
        return 1
    print(f"Renewed order {args.order_id} as {new_id}")
    return 0


def _cmd_watch(config: ClientConfig, args) -> int:
    session = _open_session(config, args)
    SyncDaemon(session).start(order_id=args.order_id)
    return 0


def _cmd_serve(config: ClientConfig, args) -> int:
    import uvicorn

    from peerclient.dashboard import create_app

    session = _open_session(config, args)
    session.start()
    uvicorn.run(create_app(session), host=args.host, port=args.port)
    return 0


def _cmd_config(config: ClientConfig, args) -> int:
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    elif args.config_command == "set":
        kv = args.keyvalue
        if "=" not in kv:
            print("Error: use key=value format")
            return 1
        key, value = kv.split("=", 1)
        try:
            new_config = set_config_value(config, key.strip(), value.strip())
            print(f"Set {key} = {get_config_value(new_config, key.strip())}")
            return 0
        except (KeyError, IndexError, TypeError, ValueError) as e:
            print(f"Error: {e}")
            return 1
    else:
        print("Use: config show | config set key=value")
        return 1
