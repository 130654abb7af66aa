"""
Command Line Interface for imgdeploy.
"""
import logging
import os
import sys

import click

from .. import __version__
from ..CONFIG.runtime_settings import RuntimeSettings
from ..ENGINE.container_engine import DockerEngine
from ..exceptions import ConfigurationError, DeployerError
from ..MANAGERS.lifecycle_driver import LifecycleDriver
from ..MODELS.instance_descriptor import InstanceDescriptor

logger = logging.getLogger("imgdeploy")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

PHASE_LOG_FILES = {
    "deploy": "deployWorkload.out",
    "start": "startWorkload.out",
    "stop": "stopWorkload.out",
    "undeploy": "undeployWorkload.out",
}


def log_to(log_dir: str, file_name: str) -> None:
    """
    Sends all deployer logging to a fresh file, replacing the previous
    target.

    :raises ConfigurationError: If the log file cannot be opened.
    """
    path = os.path.join(log_dir, file_name)
    try:
        handler = logging.FileHandler(path, mode='w')
    except OSError as e:
        raise ConfigurationError(f"Cannot open log file {path}: {e}") from e
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def fatal(err: Exception) -> None:
    logger.critical("%s", err)
    click.echo(f"Error: {err}", err=True)
    sys.exit(1)


@click.group()
@click.pass_context
def cli(ctx):
    """
    imgdeploy - image-based container deployer.

    Run from the workload directory by the host agent, one phase per call.
    """
    ctx.ensure_object(dict)
    try:
        runtime = RuntimeSettings.from_env()
        log_to(runtime.log_dir, "init.out")
        logger.info("Initializing Docker Deployer version: %s", __version__)
        descriptor = InstanceDescriptor.load(runtime.instance_file)
    except DeployerError as e:
        fatal(e)

    ctx.obj['runtime'] = runtime
    ctx.obj['descriptor'] = descriptor


def run_phase(ctx, phase: str) -> None:
    """
    Runs one lifecycle phase, logging to its phase file and exiting
    non-zero on failure.
    """
    runtime = ctx.obj['runtime']
    try:
        log_to(runtime.log_dir, PHASE_LOG_FILES[phase])
        driver = LifecycleDriver(ctx.obj['descriptor'], DockerEngine(), runtime)
        if phase == "deploy":
            driver.deploy()
        elif phase == "start":
            driver.start()
        elif phase == "stop":
            driver.stop()
        elif phase == "undeploy":
            driver.remove()
    except DeployerError as e:
        fatal(e)
    logger.info("Phase %s completed", phase)


@cli.command()
@click.pass_context
def deploy(ctx):
    """Create the workload container."""
    run_phase(ctx, "deploy")


@cli.command()
@click.pass_context
def start(ctx):
    """Start the container and wait until it is ready."""
    run_phase(ctx, "start")


@cli.command()
@click.pass_context
def stop(ctx):
    """Stop the container and its log forwarder."""
    run_phase(ctx, "stop")


@cli.command()
@click.pass_context
def undeploy(ctx):
    """Remove the container, its scoped network and optionally its image."""
    run_phase(ctx, "undeploy")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
