import click
from graceterm.modules.logging import create_logger
from graceterm.modules.server.commands import create_serve_command


class GracetermContext:
    """Context object to store CLI state."""
    def __init__(self):
        self.logger = None

pass_context = click.make_pass_decorator(GracetermContext, ensure=True)

@click.group()
@click.option('--output', '-o',
              type=click.Choice(['colorful', 'plain', 'json']),
              default='colorful',
              help='Output format (colorful for CLI, plain for CI/file, json for machine parsing)',
              envvar='GRACETERM_OUTPUT')
@click.option('--log-level', '-l',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              default='INFO',
              help='Set the logging level',
              envvar='GRACETERM_LOG_LEVEL')
@pass_context
def cli(ctx, output, log_level):
    """graceterm: serve HTTP(S) and shut it down gracefully."""
    ctx.logger = create_logger(output, log_level)

cli.add_command(create_serve_command())

def main():
    cli()

if __name__ == '__main__':
    main()
