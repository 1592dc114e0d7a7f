import sys
from functools import partial

import anyio
import click


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    }
)
@click.option("-r", "--root", default=".", show_default=True, help="The root of the project.")
@click.option(
    "-d",
    "--directory",
    default=".",
    show_default=True,
    help="Terraform working directory relative to the root directory.",
)
@click.option("-v", "--version", "tf_version", default=None, help="Terraform version to use (default: resolved).")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Discard image pull progress and Terraform output.")
@click.option("--log-level", default=None, help="Log level (default: from TFBOX_LOG_LEVEL or WARNING).")
@click.argument("tf_args", nargs=-1, type=click.UNPROCESSED)
def main(
    root: str,
    directory: str,
    tf_version: str | None,
    quiet: bool,
    log_level: str | None,
    tf_args: tuple[str, ...],
) -> None:
    """Run terraform inside docker.

    Options must come before the Terraform arguments; everything from the
    first Terraform argument on is passed through unchanged, e.g.

        tfbox -d envs/prod plan -var-file=prod.tfvars

    Use ``--`` when the first Terraform argument is itself a flag:

        tfbox -- -chdir=envs/prod plan
    """
    from tfbox.errors import ContainerExitError, TfboxError
    from tfbox.log import setup_logging
    from tfbox.pipeline import run
    from tfbox.settings import get_settings

    if not tf_args:
        msg = "you need to pass terraform commands/flags"
        raise click.UsageError(msg)

    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    invocation = partial(
        run,
        settings,
        tf_args=list(tf_args),
        root=root,
        working_dir=directory,
        version=tf_version,
        verbose=not quiet,
    )

    try:
        anyio.run(invocation)
    except ContainerExitError as exc:
        sys.exit(exc.exit_code)
    except (TfboxError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
