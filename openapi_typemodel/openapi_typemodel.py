import json
import logging
import sys
from pathlib import Path

import click
import yaml

from .cli_utils import reconstruct_command_line
from .pipeline import DocumentSet, ResolutionFailed, ResolverConfig, TypeModelBuilder
from .pipeline.document import DocumentLoadError
from .report import ModelReportRenderer


@click.command()
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option("--format", "-f", "output_format", default="json", type=click.Choice(["json", "markdown"]))
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log resolution details to stderr")
@click.argument("path", default=None, type=click.Path(exists=True, resolve_path=True))
@click.argument("output", default=None, required=False, type=click.Path(resolve_path=True))
def openapi_typemodel(config, output_format, verbose, path, output):
    """Resolve the schemas of an OpenAPI document into a named type model."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if config is not None:
        with open(config) as f:
            # YAML is a superset of JSON
            config = ResolverConfig.from_dict(yaml.safe_load(f) or {})
    else:
        config = ResolverConfig()

    try:
        documents = DocumentSet.from_file(path)
        model = TypeModelBuilder(documents, config).build()
    except ResolutionFailed as e:
        for error in e.errors:
            click.echo(str(error), err=True)
        sys.exit(1)
    except DocumentLoadError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    if output_format == "markdown":
        out = ModelReportRenderer(header=reconstruct_command_line(openapi_typemodel)).render(model)
    else:
        out = json.dumps(model.to_dict(), indent=2, default=str) + "\n"

    if output is None:
        click.echo(out, nl=False)
    else:
        Path(output).write_text(out)
