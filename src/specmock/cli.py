"""
Specmock CLI

Command-line interface for the contract-driven mock server.

Commands:
    serve       - Start mock HTTP server
    list        - List loaded specs and their endpoints
    generate    - Generate one mock response without starting a server

Examples:
    # Serve every contract in ./specs
    specmock serve --specs-dir specs --port 8080

    # Reproducible responses
    specmock serve --seed 42

    # Show what a request would return
    specmock generate GET /pets/123 --spec petstore.yaml
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from . import __version__
from .common.config import MockConfig
from .common.errors import LoadError, SpecmockError
from .mock import MockEngine, MockServer, SpecificationRegistry
from .mock.selector import is_json


def build_config(args) -> MockConfig:
    """
    Build MockConfig from an optional YAML file plus command-line overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        MockConfig
    """
    config = MockConfig.from_yaml(args.config) if args.config else MockConfig()

    if args.specs_dir is not None:
        config.specs_dir = args.specs_dir
    if args.default_spec is not None:
        config.default_spec = args.default_spec
    if args.log_level is not None:
        config.log_level = args.log_level

    generation = config.generation
    if getattr(args, 'seed', None) is not None:
        generation.seed = args.seed
    if getattr(args, 'array_length', None) is not None:
        generation.default_array_length = args.array_length
    if getattr(args, 'string_length', None) is not None:
        generation.default_string_length = args.string_length
    if getattr(args, 'no_examples', False):
        generation.use_examples = False

    if getattr(args, 'host', None) is not None:
        config.host = args.host
    if getattr(args, 'port', None) is not None:
        config.port = args.port
    if getattr(args, 'no_admin', False):
        config.admin_enabled = False

    return config


def load_registry(config: MockConfig) -> SpecificationRegistry:
    registry = SpecificationRegistry(default_spec=config.default_spec)
    registry.load(config.specs_dir)
    return registry


def cmd_serve(args):
    """
    Start mock HTTP server serving generated responses.

    Args:
        args: Parsed command-line arguments
    """
    print(f"🎭 Specmock Mock Server")

    config = build_config(args)

    if config.generation.seed is not None:
        print(f"🎲 Fixed seed: {config.generation.seed}")
    if not config.generation.use_examples:
        print(f"📝 Declared examples ignored")

    # Create server
    try:
        server = MockServer(config=config)
    except (SpecmockError, OSError) as e:
        print(f"❌ Failed to create mock server: {e}")
        sys.exit(1)

    # Start server (blocking)
    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\n👋 Mock server stopped")


def cmd_list(args):
    """
    List loaded specs and their endpoints.

    Args:
        args: Parsed command-line arguments
    """
    config = build_config(args)
    try:
        registry = load_registry(config)
    except LoadError as e:
        print(f"❌ {e.message}")
        sys.exit(1)

    if args.json:
        print(json.dumps(registry.describe(), indent=2))
        return

    print(f"📚 Specs in {config.specs_dir}")
    for name in registry.names():
        document = registry.resolve(name)
        marker = " (default)" if name == registry.default_name else ""
        print(f"\n  {name}{marker}: {document.title} {document.version}")
        for endpoint in document.endpoints():
            methods = ', '.join(endpoint['methods'])
            print(f"    {methods:<24} {endpoint['path']}")

    for name, error in registry.errors.items():
        print(f"\n  ⚠️  {name}: {error.message}")

    if registry.errors:
        sys.exit(1)


def cmd_generate(args):
    """
    Generate and print one mock response.

    Args:
        args: Parsed command-line arguments
    """
    config = build_config(args)
    try:
        registry = load_registry(config)
        engine = MockEngine(registry, config=config.generation)
        mocked = engine.handle(
            args.method,
            args.path,
            spec_name=args.spec,
            status=args.status,
            accept=args.accept
        )
    except SpecmockError as e:
        print(f"❌ {e.http_status} {type(e).__name__}: {e.message}", file=sys.stderr)
        sys.exit(1)

    print(f"HTTP {mocked.status_code}")
    if mocked.media_type:
        print(f"Content-Type: {mocked.media_type}")
    for key, value in mocked.headers.items():
        print(f"{key}: {value}")
    print()

    if mocked.media_type is None:
        return
    if is_json(mocked.media_type):
        print(json.dumps(mocked.body, indent=2, default=str))
    else:
        print(mocked.render())


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-d', '--specs-dir', help='Directory with OpenAPI/Swagger files (default: specs)')
    common.add_argument('--default-spec', help='File name of the default spec')
    common.add_argument('-c', '--config', help='YAML configuration file')
    common.add_argument('--log-level', choices=['debug', 'info', 'warning', 'error'],
                        help='Log level (default: info)')
    common.add_argument('--seed', type=int, help='Seed for reproducible generated data')
    common.add_argument('--array-length', type=int, help='Default generated array length (default: 3)')
    common.add_argument('--string-length', type=int, help='Default generated string length (default: 10)')
    common.add_argument('--no-examples', action='store_true', help='Ignore declared examples, always generate')

    parser = argparse.ArgumentParser(
        prog='specmock',
        description="Specmock - Mock API server generated from OpenAPI / Swagger contracts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve every contract in ./specs
  %(prog)s serve --specs-dir specs --port 8080

  # List specs and endpoints
  %(prog)s list

  # Generate a response for a request
  %(prog)s generate GET /pets --status 200 --accept application/json
        """
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', parents=[common], help='Start mock HTTP server')
    serve_parser.add_argument('--host', help='Host to bind (default: 127.0.0.1)')
    serve_parser.add_argument('-p', '--port', type=int, help='Port to bind (default: 8080)')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')

    # --- LIST command ---
    list_parser = subparsers.add_parser('list', parents=[common], help='List specs and endpoints')
    list_parser.add_argument('--json', action='store_true', help='Print the inventory as JSON')

    # --- GENERATE command ---
    generate_parser = subparsers.add_parser('generate', parents=[common], help='Generate one mock response')
    generate_parser.add_argument('method', help='HTTP method (e.g., GET)')
    generate_parser.add_argument('path', help='Request path (e.g., /pets/123)')
    generate_parser.add_argument('--spec', help='Spec name (default: the default spec)')
    generate_parser.add_argument('--status', help='Requested response status')
    generate_parser.add_argument('--accept', help='Accept header value')

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, (args.log_level or 'info').upper()),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Dispatch to command handler
    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'list':
        cmd_list(args)
    elif args.command == 'generate':
        cmd_generate(args)


if __name__ == '__main__':
    main()
