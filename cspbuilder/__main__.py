"""
cspbuilder CLI
"""
import argparse
import json
import sys
from pathlib import Path

from cspbuilder.config.loader import BuilderSettings
from cspbuilder.core.compiler import CSPBuilder
from cspbuilder.logging_config import setup_logging
from cspbuilder.models.policy import ConnectionContext


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog="cspbuilder",
        description="cspbuilder - compile a Content-Security-Policy header from a policy file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the header for a YAML policy
  python -m cspbuilder compile policy.yaml

  # Compile as if the request came in over HTTPS
  python -m cspbuilder compile policy.json --https

  # Write an nginx config line
  python -m cspbuilder compile policy.yaml --format nginx --output csp.conf
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    compile_parser = subparsers.add_parser('compile', help='Compile a policy file')
    compile_parser.add_argument('policy', help='Path to a YAML or JSON policy file')
    compile_parser.add_argument('--https', action='store_true',
                                help='Treat the connection as HTTPS')
    compile_parser.add_argument('--no-https-transform', action='store_true',
                                help='Keep http:// sources on HTTPS connections')
    compile_parser.add_argument('--format', choices=['header', 'value', 'json', 'nginx', 'apache'],
                                default='header', help='Output format')
    compile_parser.add_argument('--output', help='Write output to this file instead of stdout')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = BuilderSettings()
    setup_logging(settings.log_level, settings.log_json)

    try:
        if args.command == 'compile':
            return cmd_compile(args, settings)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def cmd_compile(args, settings):
    """Execute compile command"""
    builder = CSPBuilder.from_file(
        args.policy,
        https_transform_on_https_connections=(
            settings.https_transform_on_https_connections and not args.no_https_transform
        ),
        nonce_bytes=settings.nonce_bytes,
        default_hash_algorithm=settings.default_hash_algorithm,
    )
    context = ConnectionContext(is_secure=args.https)

    if args.format == 'header':
        output = "\n".join(
            f"{name}: {value}" for name, value in builder.get_header_array(context).items()
        )
    elif args.format == 'value':
        output = builder.get_compiled_header(context)
    elif args.format == 'json':
        output = json.dumps(builder.get_header_array(context), indent=2)
    else:
        output = builder.get_snippet(args.format, context)

    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        print(f"Wrote {args.format} output to {args.output}")
    else:
        print(output)

    return 0


if __name__ == '__main__':
    sys.exit(main())
