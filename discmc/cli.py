"""
Command-line entry points.

    discmc-sample       NVT Metropolis sampler, replica exchange with -r > 1
    discmc-makeconfig   random initial configuration
    discmc-shrinkconfig isotropic rescaling with clash removal
    discmc-wrap         replace the boundary by the inflated convex hull

Configurations are read from a file or standard input and written to a
file or standard output; logging goes to standard error unless ``-l`` is
given. Every tool returns 0 on success and 1 on an input or placement error.
"""

from __future__ import annotations

import argparse
import io
import logging
import pathlib
import random
import sys
from contextlib import ExitStack
from typing import List, Optional, TextIO

from .builder import MAX_TESTS, build_configuration, shrink_configuration, wrap_configuration
from .configuration import Configuration
from .errors import DiscMCError
from .file_formats import (
    load_configuration,
    load_force_field,
    load_topology,
    open_trajectory,
    read_configuration,
    save_configuration,
    write_configuration,
    write_topology,
)
from .integrator import relax_overlaps
from .logging_utils import attach_replica_logs, configure_logging, detach_replica_logs, release_logging
from .replica import ReplicaExchange, jiggle_random, replica_file_name
from .settings_loader import SamplerSettings, load_settings_from_yaml

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def _read_input(path: Optional[pathlib.Path], stdin: Optional[TextIO] = None) -> Configuration:
    if path is not None:
        return load_configuration(path)
    return read_configuration(stdin or sys.stdin, "<stdin>")


def _write_output(config: Configuration, path: Optional[pathlib.Path], stdout: Optional[TextIO] = None) -> None:
    if path is not None:
        save_configuration(config, path)
    else:
        write_configuration(config, stdout or sys.stdout)


# ----------------------------------------------------------------------
# Sampler
# ----------------------------------------------------------------------
def build_sampler_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discmc-sample",
        description="Metropolis Monte Carlo of rigid disc molecules (NVT, replica exchange with -r).",
    )
    parser.add_argument("-v", dest="verbose", action="store_true", help="Verbose logging.")
    parser.add_argument("-p", dest="periodic", action="store_true", help="Periodic boundary conditions.")
    parser.add_argument("-t", dest="topology", type=pathlib.Path, required=True, help="Topology file.")
    parser.add_argument("-f", dest="force_field", type=pathlib.Path, required=True, help="Force-field file.")
    parser.add_argument("-c", dest="initial", type=pathlib.Path, help="Initial configuration (default stdin).")
    parser.add_argument("-o", dest="output", type=pathlib.Path, help="Final configuration (default stdout).")
    parser.add_argument("-l", dest="log", type=pathlib.Path, help="Log file (default stderr).")
    parser.add_argument("-n", dest="frame_freq", type=int, default=0, help="Trajectory frame frequency (0 = never).")
    parser.add_argument("-s", dest="trajectory", type=pathlib.Path, help="Gzipped trajectory file.")
    parser.add_argument("-r", dest="replicas", type=int, default=1, help="Number of replicas.")
    parser.add_argument("--seed", type=int, default=None, help="Master random seed.")
    parser.add_argument("--config", dest="settings", type=pathlib.Path, help="YAML file of tuning parameters.")
    parser.add_argument("--workers", type=int, default=None, help="Threads used to advance replicas.")
    parser.add_argument("n_steps", type=int, help="Number of trial moves.")
    parser.add_argument("print_freq", type=int, help="Trials between progress reports.")
    parser.add_argument("beta", type=float, help="Inverse temperature (coldest replica).")
    parser.add_argument("pressure", type=float, help="Pressure (carried, unused by NVT).")
    return parser


def parse_sampler_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_sampler_parser()
    args = parser.parse_args(argv)
    if args.n_steps <= 0:
        parser.error("Nothing to do, number of steps invalid.")
    if args.print_freq <= 0:
        parser.error("Negative or zero print frequency invalid.")
    if args.beta < 0:
        parser.error("Negative temperature invalid.")
    if args.pressure < 0:
        parser.error("Negative pressure invalid.")
    if not 1 <= args.replicas < 1000:
        parser.error("Replica count must be between 1 and 999.")
    if args.frame_freq > 0 and args.trajectory is None:
        parser.error("You must specify a file name for saving a trajectory (-s option).")
    return args


def _load_settings(args: argparse.Namespace) -> SamplerSettings:
    settings = load_settings_from_yaml(args.settings) if args.settings else SamplerSettings()
    if args.workers is not None:
        settings.replica.workers = max(1, args.workers)
    if args.seed is not None:
        settings.seed = args.seed
    if settings.seed is None:
        settings.seed = random.SystemRandom().randrange(2**31)
    return settings


def run_sampler(args: argparse.Namespace, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    with ExitStack() as stack:
        stack.callback(release_logging, configure_logging(args.verbose, args.log))
        try:
            settings = _load_settings(args)
            logger.info("Master seed %d", settings.seed)

            logger.debug("Reading configuration.")
            config = _read_input(args.initial, stdin)
            force_field = load_force_field(args.force_field)
            logger.debug("Read force field successfully.\n%s", force_field.summary())
            topology = load_topology(args.topology)
            topology.check()
            logger.debug("Read topology file successfully.\n%s", topology.summary())
            config.add_topology(topology)
            if args.periodic:
                config.set_periodic(True)
            for problem in config.problems():
                logger.warning("%s", problem)

            logger.info("After 0 steps, P = %g, beta = %g\n%s", args.pressure, args.beta, config.summary(force_field))
            config = relax_overlaps(
                config,
                force_field,
                args.beta,
                args.pressure,
                d_max=settings.jiggle.d_max,
                steps_per_object=settings.jiggle.steps_per_object,
                rng=jiggle_random(settings.seed),
            )

            trajectories = None
            if args.frame_freq > 0:
                names = [str(args.trajectory)]
                if args.replicas > 1:
                    names = [replica_file_name(str(args.trajectory), i) for i in range(args.replicas)]
                trajectories = [stack.enter_context(open_trajectory(name)) for name in names]
                logger.info("Snap shots will be saved every %d steps", args.frame_freq)
            if args.log is not None and args.replicas > 1:
                stack.callback(detach_replica_logs, attach_replica_logs(str(args.log), args.replicas, args.verbose))

            logger.debug(
                "With%s periodic boundary conditions. Starting iteration loop.", "" if config.periodic else "out"
            )
            sampler = ReplicaExchange(
                config,
                force_field,
                args.beta,
                args.pressure,
                args.replicas,
                settings=settings,
                seed=settings.seed,
                trajectories=trajectories,
            )
            final = sampler.run(args.n_steps, args.print_freq, args.frame_freq)

            logger.debug("Writing final configuration.")
            _write_output(final, args.output, stdout)
            logger.info("...Done...")
        except DiscMCError as exc:
            logger.error("%s", exc)
            return EXIT_FAILURE
    return EXIT_SUCCESS


def sample_main(argv: Optional[List[str]] = None) -> int:
    return run_sampler(parse_sampler_args(argv))


# ----------------------------------------------------------------------
# Builder tools
# ----------------------------------------------------------------------
def parse_makeconfig_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="discmc-makeconfig", description="Build a random initial configuration.")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Verbose logging.")
    parser.add_argument("-p", dest="periodic", action="store_true", help="Place with periodic boundaries.")
    parser.add_argument("-t", dest="topology", type=pathlib.Path, help="Topology file (default unit discs).")
    parser.add_argument("-f", dest="force_field", type=pathlib.Path, help="Force-field file to validate.")
    parser.add_argument("-o", dest="output", type=pathlib.Path, help="Output file (default stdout).")
    parser.add_argument("-d", dest="scale", type=float, default=1.0, help="Place in an area shrunk by this factor.")
    parser.add_argument("-a", dest="attempts", type=int, default=MAX_TESTS, help="Placement attempts per object.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed.")
    parser.add_argument("width", type=float)
    parser.add_argument("height", type=float)
    parser.add_argument("counts", type=int, nargs="+", help="Number of objects of type 0, 1, ...")
    args = parser.parse_args(argv)
    if args.width * args.height <= 0.0:
        parser.error("Negative or zero surface area!")
    if args.scale <= 0.0:
        parser.error("Scale must be positive.")
    return args


def makeconfig_main(argv: Optional[List[str]] = None, stdout: Optional[TextIO] = None) -> int:
    args = parse_makeconfig_args(argv)
    with ExitStack() as stack:
        stack.callback(release_logging, configure_logging(args.verbose))
        try:
            topology = load_topology(args.topology) if args.topology else None
            if args.force_field is not None:
                logger.debug("%s", load_force_field(args.force_field).summary())
            config = build_configuration(
                args.counts,
                args.width,
                args.height,
                topology=topology,
                scale=args.scale,
                max_try=args.attempts,
                periodic=args.periodic,
                rng=random.Random(args.seed),
            )
            if args.verbose:
                text = io.StringIO()
                write_topology(config.topology, text)
                logger.debug("Set up topology:\n%s", text.getvalue())
            _write_output(config, args.output, stdout)
        except DiscMCError as exc:
            logger.error("%s", exc)
            return EXIT_FAILURE
    return EXIT_SUCCESS


def parse_shrinkconfig_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="discmc-shrinkconfig", description="Rescale a configuration.")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Verbose logging.")
    parser.add_argument("-s", dest="scale", type=float, default=1.0, help="Scale factor.")
    parser.add_argument("-t", dest="topology", type=pathlib.Path, help="Topology file (default unit discs).")
    parser.add_argument("-o", dest="output", type=pathlib.Path, help="Output file (default stdout).")
    parser.add_argument("-a", dest="attempts", type=int, default=1, help="Jiggle attempts to remove clashes.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed.")
    parser.add_argument("source", type=pathlib.Path, nargs="?", help="Input configuration (default stdin).")
    args = parser.parse_args(argv)
    if args.scale <= 0.0:
        parser.error("Scale must be positive.")
    return args


def shrinkconfig_main(
    argv: Optional[List[str]] = None, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None
) -> int:
    args = parse_shrinkconfig_args(argv)
    with ExitStack() as stack:
        stack.callback(release_logging, configure_logging(args.verbose))
        try:
            config = _read_input(args.source, stdin)
            if args.topology is not None:
                config.add_topology(load_topology(args.topology))
            logger.debug("Scale factor is %g, attempts %d", args.scale, args.attempts)
            if shrink_configuration(config, args.scale, max_try=args.attempts, rng=random.Random(args.seed)):
                return EXIT_FAILURE
            _write_output(config, args.output, stdout)
        except DiscMCError as exc:
            logger.error("%s", exc)
            return EXIT_FAILURE
    return EXIT_SUCCESS


def parse_wrap_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="discmc-wrap", description="Wrap a configuration in its convex hull.")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Verbose logging.")
    parser.add_argument("-t", dest="topology", type=pathlib.Path, help="Topology file (default unit discs).")
    parser.add_argument("-o", dest="output", type=pathlib.Path, help="Output file (default stdout).")
    parser.add_argument("source", type=pathlib.Path, nargs="?", help="Input configuration (default stdin).")
    return parser.parse_args(argv)


def wrap_main(argv: Optional[List[str]] = None, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    args = parse_wrap_args(argv)
    with ExitStack() as stack:
        stack.callback(release_logging, configure_logging(args.verbose))
        try:
            config = _read_input(args.source, stdin)
            if args.topology is not None:
                config.add_topology(load_topology(args.topology))
            wrap_configuration(config)
            _write_output(config, args.output, stdout)
        except DiscMCError as exc:
            logger.error("%s", exc)
            return EXIT_FAILURE
    return EXIT_SUCCESS

