"""Command-line interface for SDLC Auditor."""

import click
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .. import __version__
from ..core import Config, ConfigError, SecurityAuditor
from ..core.models import FILE_EXTENSIONS, ThreatModelRequest
from ..llm import supported_frameworks
from ..utils.output import OutputFormatter


def setup_logging(verbose: bool, quiet: bool, level_name: str = "INFO",
                  log_file: Optional[Path] = None) -> None:
    """Setup logging configuration."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, level_name.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
        force=True,
    )


def detect_language(path: Path) -> Optional[str]:
    """Guess the declared language from a file extension."""
    suffix = path.suffix.lstrip('.').lower()
    for language, extension in FILE_EXTENSIONS.items():
        if extension == suffix:
            return language
    if suffix in ('cc', 'cxx', 'hpp', 'h'):
        return 'cpp'
    if suffix in ('jsx', 'mjs'):
        return 'javascript'
    if suffix == 'tsx':
        return 'typescript'
    return None


def _read_source(path: Path, language: Optional[str]):
    language = language or detect_language(path)
    if not language:
        raise click.BadParameter(f"Cannot infer language from {path.name}; pass --language")
    return path.read_text(encoding='utf-8', errors='replace'), language


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress output except errors')
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Configuration file path')
@click.pass_context
def cli(ctx, verbose: bool, quiet: bool, config: Optional[Path]):
    """SDLC Auditor - multi-engine security analysis with AI review."""
    ctx.ensure_object(dict)
    load_dotenv()

    # Load configuration
    try:
        if config:
            loaded = Config.load_from_file(config)
        else:
            # Try to find config file automatically
            config_file = Config.find_config_file()
            loaded = Config.load_from_file(config_file) if config_file else Config.get_default_config()
    except ConfigError as e:
        raise click.ClickException(str(e))

    # Override config with CLI options
    if verbose:
        loaded.output.verbose = True
    if quiet:
        loaded.output.quiet = True

    setup_logging(verbose, quiet, loaded.log_level, loaded.log_file)
    ctx.obj['config'] = loaded


@cli.command()
@click.option('--host', help='Interface to bind')
@click.option('--port', '-p', type=int, help='Port to listen on')
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int]):
    """Run the HTTP service."""
    import uvicorn
    from ..api import create_app

    config = ctx.obj['config'].merge_with_cli_args(host=host, port=port)
    app = create_app(config=config)

    click.echo(f"Serving on http://{config.server.host}:{config.server.port}")
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="warning" if config.output.quiet else "info",
    )


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--language', '-l', help='Declared source language (inferred from the extension if omitted)')
@click.option('--format', '-f', 'output_format',
              type=click.Choice(['table', 'json', 'markdown']),
              help='Output format')
@click.option('--output', '-o', type=click.Path(path_type=Path),
              help='Output file path')
@click.pass_context
def analyze(ctx, file: Path, language: Optional[str], output_format: Optional[str], output: Optional[Path]):
    """Analyze a source file for security vulnerabilities."""
    config = ctx.obj['config'].merge_with_cli_args(format=output_format, output=output)
    code, language = _read_source(file, language)

    try:
        auditor = SecurityAuditor(config)

        if not config.output.quiet:
            click.echo(f"Analyzing {file} as {language}...", err=True)

        report = auditor.analyze(code, language)

        formatter = OutputFormatter(config.output)
        output_text = formatter.format_report(report)

        if config.output.output_file:
            config.output.output_file.write_text(output_text, encoding='utf-8')
            if not config.output.quiet:
                click.echo(f"Results written to {config.output.output_file}", err=True)
        else:
            click.echo(output_text)

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if config.output.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(2)

    # Exit with error code if high-severity issues found
    if report.get_high_severity_findings():
        sys.exit(1)


@cli.command('threat-model')
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--language', '-l', help='Declared source language (inferred from the extension if omitted)')
@click.option('--framework', default='STRIDE', show_default=True,
              help=f"Threat modeling framework ({', '.join(supported_frameworks())})")
@click.pass_context
def threat_model(ctx, file: Path, language: Optional[str], framework: str):
    """Generate a threat model for a source file."""
    config = ctx.obj['config']
    code, language = _read_source(file, language)

    auditor = SecurityAuditor(config)
    result = auditor.threat_model(ThreatModelRequest(code=code, language=language, framework=framework))

    if not config.output.quiet:
        click.echo(f"Framework: {result.framework}", err=True)
    click.echo(result.threat_model)

    if result.error:
        sys.exit(1)


@cli.command()
@click.pass_context
def info(ctx):
    """Show information about the auditor and its components."""
    config = ctx.obj['config']

    try:
        auditor = SecurityAuditor(config)
        info = auditor.get_analyzer_info()

        click.echo("SDLC Auditor Information")
        click.echo("=" * 40)

        click.echo("\nAnalyzers:")
        for tool, details in info['adapters'].items():
            status = "✓" if details['available'] else "✗"
            click.echo(f"  {status} {tool}: {', '.join(details['languages'])} ({details['timeout_ms']}ms)")

        click.echo(f"\nAI Review: {'✓ Enabled' if info['llm_enabled'] else '✗ Disabled (GROQ_API_KEY not set)'}")
        click.echo(f"  Model: {info['llm_model']}")
        click.echo(f"\nThreat modeling frameworks: {', '.join(info['frameworks'])}")
        click.echo(f"Languages with dedicated analyzers: {', '.join(info['languages'])}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--output', '-o', type=click.Path(path_type=Path),
              default=Path('.sdlcaudit.yaml'),
              help='Output configuration file path')
@click.pass_context
def init(ctx, output: Path):
    """Initialize a new configuration file."""
    try:
        if output.exists():
            if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
                click.echo("Cancelled.")
                return

        # Create default configuration
        config = Config.get_default_config()

        # Save to file
        config.save_to_file(output)

        click.echo(f"Configuration file created: {output}")
        click.echo("Set GROQ_API_KEY in your environment or .env file to enable AI review.")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
