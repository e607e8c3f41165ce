import click
from typing import Optional, TextIO
from .command.serve import ServeCommand
from .config import ServeConfig, load_serve_config, validate_serve_config


def create_serve_command() -> click.Command:
    """Create the serve command."""

    @click.command(name='serve')
    @click.option('--config', '-c', 'config_file', type=click.File('r'), help='YAML file with server and shutdown settings')
    @click.option('--host', type=str, help='Address to listen on')
    @click.option('--port', '-p', type=int, help='Port to listen on (0 picks a free port)')
    @click.option('--certfile', type=click.Path(exists=True, dir_okay=False), help='PEM certificate; enables TLS')
    @click.option('--keyfile', type=click.Path(exists=True, dir_okay=False), help='PEM private key for --certfile')
    @click.option('--timeout', '-t', type=float, help='Seconds to wait before forcefully closing connections')
    @click.option('--delay', type=float, help='Seconds the demo handler waits before answering')
    @click.pass_context
    def serve(ctx, config_file: Optional[TextIO], host: Optional[str], port: Optional[int],
              certfile: Optional[str], keyfile: Optional[str], timeout: Optional[float],
              delay: Optional[float]):
        """Serve a demo HTTP(S) endpoint and terminate it gracefully on Ctrl+C.
        
        Settings come from --config when given; command line options override them.
        """
        try:
            config = load_serve_config(config_file.read()) if config_file else ServeConfig()
            config = merge_overrides(config, host=host, port=port, certfile=certfile,
                                     keyfile=keyfile, timeout=timeout, delay=delay)
        except ValueError as e:
            raise click.UsageError(str(e))

        command = ServeCommand(logger=ctx.obj.logger, config=config)
        command.run()

    return serve


def merge_overrides(config: ServeConfig, **overrides) -> ServeConfig:
    """Apply command line values that were actually given on top of a config.

    Raises:
        ValueError: If the merged configuration is invalid
    """
    data = config.model_dump()
    for key in ('host', 'port', 'certfile', 'keyfile'):
        if overrides.get(key) is not None:
            data['server'][key] = overrides[key]
    if overrides.get('timeout') is not None:
        data['shutdown']['timeout'] = overrides['timeout']
    if overrides.get('delay') is not None:
        data['delay'] = overrides['delay']
    return validate_serve_config(data)
