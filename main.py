"""GCP <-> Twist Webhook Bridge."""

import argparse
import logging
import sys

from bridge.constants import BIND_ADDR, DEBUG_MODE, LOG_LEVEL, REGISTRY_FILE, SERVER_NAME
from bridge.controller import create_app
from bridge.coordinator import BridgeCoordinator
from bridge.normalizer import normalize
from bridge.registry import IntegrationRegistry, RegistryLoadError
from bridge.services import DeliveryDispatcher

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if (verbose or DEBUG_MODE) else getattr(logging, LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def split_bind_addr(bind_addr: str):
    host, sep, port = bind_addr.rpartition(':')
    if not sep or not host or not port.isdigit():
        raise ValueError(f"bind addr inválido: {bind_addr!r} (esperado host:porta)")
    return host, int(port)


def serve(args) -> int:
    if not args.server_name:
        logger.error("--server-name (ou SERVER_NAME) é obrigatório")
        return 2
    try:
        host, port = split_bind_addr(args.bind_addr)
    except ValueError as e:
        logger.error(str(e))
        return 2

    registry = IntegrationRegistry(args.db)
    try:
        registry.load()
    except RegistryLoadError as e:
        logger.error(f"Não foi possível iniciar: {e}")
        return 1
    for record in registry.records():
        logger.info(f"> {record.secret_id} {record.configuration.user_name}")

    dispatcher = DeliveryDispatcher()
    dispatcher.start()
    app = create_app(BridgeCoordinator(args.server_name, registry, dispatcher))
    try:
        # use_reloader=False evita dois processos disputando o arquivo do registro
        app.run(host=host, port=port, debug=DEBUG_MODE, use_reloader=False, threaded=True)
    finally:
        logger.info("Encerrando, aguardando entregas pendentes")
        dispatcher.stop(wait=30)
    return 0


def print_reply(args) -> int:
    with open(args.input_filename, 'r', encoding='utf-8') as f:
        data = f.read()
    print(normalize(data))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="GCP <-> Twist Webhook Bridge")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run http server.")
    serve_parser.add_argument("--server-name", default=SERVER_NAME, help="hostname of server")
    serve_parser.add_argument("--bind-addr", default=BIND_ADDR, help="listener bind addr")
    serve_parser.add_argument("--db", default=REGISTRY_FILE, help="database filename")
    serve_parser.set_defaults(func=serve)

    reply_parser = subparsers.add_parser("print-reply", help="Print reply to webhook input.")
    reply_parser.add_argument("--input-filename", required=True, help="alert payload file")
    reply_parser.set_defaults(func=print_reply)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
