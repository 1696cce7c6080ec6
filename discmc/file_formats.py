"""
Readers and writers for the plain-text configuration, topology and
force-field files.

All three formats share the same lexical rules: ``#`` starts a comment that
runs to the end of the line, and blank or whitespace-only lines are ignored.
Errors are reported as ``InputFormatError`` carrying the physical line
number of the offending line.

Configuration::

    <width> <height>            # "0 0" announces a polygon boundary
    [<n_vertices>
     <x> <y>                    # n_vertices times
    ]
    <n_objects>
    <type> <x> <y> <theta>      # n_objects times

Force field::

    <T>
    <r_1> ... <r_T>
    <colour_1> ... <colour_T>
    <cut_off> <length>
    <eps_1,1> ... <eps_1,T>     # T rows

Topology::

    <T>
    <name> <radius>             # T times
    <M>
    <molecule name>             # M blocks of: name, atom count, atoms
    <n_atoms>
    <type> <dx> <dy> <colour>
"""

from __future__ import annotations

import gzip
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, TextIO, Tuple, TypeVar, Union

from .configuration import Boundary, Configuration, PlacedObject
from .errors import InputFormatError, InputMissingError
from .force_field import ForceField
from .geometry import Polygon
from .topology import AtomTemplate, AtomType, MoleculeTemplate, Topology

PathLike = Union[str, Path]
T = TypeVar("T")

COMMENT_CHAR = "#"
TRAJECTORY_SEPARATOR = "===={step}====\n"


class _LineReader:
    """Yields the meaningful lines of a stream together with their line numbers."""

    def __init__(self, stream: Iterable[str], source: str):
        self.source = source
        self._lines: Iterator[Tuple[int, str]] = self._meaningful(stream)
        self.line_number: Optional[int] = None

    @staticmethod
    def _meaningful(stream: Iterable[str]) -> Iterator[Tuple[int, str]]:
        for number, raw in enumerate(stream, start=1):
            text = raw.split(COMMENT_CHAR, 1)[0].strip()
            if text:
                yield number, text

    def error(self, message: str, line_number: Optional[int] = None) -> InputFormatError:
        return InputFormatError(
            message,
            source=self.source,
            line_number=line_number if line_number is not None else self.line_number,
        )

    def next_line(self, what: str) -> str:
        try:
            self.line_number, text = next(self._lines)
        except StopIteration:
            raise self.error(f"Unexpected end of file while reading {what}.") from None
        return text

    def next_fields(self, what: str, count: Optional[int] = None) -> List[str]:
        fields = self.next_line(what).split()
        if count is not None and len(fields) != count:
            raise self.error(f"Expected {count} fields for {what}, found {len(fields)}.")
        return fields

    def convert(self, token: str, kind: Callable[[str], T], what: str) -> T:
        try:
            return kind(token)
        except ValueError:
            raise self.error(f"Invalid {what}: {token!r}.") from None

    def count(self, token: str, what: str) -> int:
        value = self.convert(token, int, what)
        if value < 0:
            raise self.error(f"Negative {what}: {value}.")
        return value

    def expect_end(self) -> None:
        extra = next(self._lines, None)
        if extra is not None:
            raise self.error("Unexpected extra content after the end of the data.", extra[0])


def _open_for_reading(path: PathLike) -> TextIO:
    path = Path(path)
    try:
        return path.open("r", encoding="utf-8")
    except FileNotFoundError:
        raise InputMissingError(f"File {path} does not exist.") from None
    except OSError as exc:
        raise InputMissingError(f"File {path} cannot be read: {exc.strerror}.") from exc


# ----------------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------------
def read_configuration(stream: Iterable[str], source: str = "<configuration>") -> Configuration:
    reader = _LineReader(stream, source)
    header = reader.next_fields("boundary size", 2)
    width = reader.convert(header[0], float, "width")
    height = reader.convert(header[1], float, "height")

    if width == 0.0 and height == 0.0:
        n_vertices = reader.count(reader.next_fields("number of vertices", 1)[0], "number of vertices")
        if n_vertices < 3:
            raise reader.error(f"A boundary polygon needs at least 3 vertices, got {n_vertices}.")
        polygon = Polygon()
        for _ in range(n_vertices):
            x_text, y_text = reader.next_fields("polygon vertex", 2)
            polygon.add_vertex(reader.convert(x_text, float, "vertex x"), reader.convert(y_text, float, "vertex y"))
        boundary = Boundary.from_polygon(polygon)
    elif width > 0.0 and height > 0.0:
        boundary = Boundary.rectangle(width, height)
    else:
        raise reader.error(f"Invalid boundary size {width:g} x {height:g}.")

    n_objects = reader.count(reader.next_fields("number of objects", 1)[0], "number of objects")
    objects: List[PlacedObject] = []
    for _ in range(n_objects):
        fields = reader.next_fields("object", 4)
        objects.append(
            PlacedObject(
                molecule_type=reader.count(fields[0], "object type"),
                x=reader.convert(fields[1], float, "object x"),
                y=reader.convert(fields[2], float, "object y"),
                theta=reader.convert(fields[3], float, "object orientation"),
            )
        )
    reader.expect_end()
    return Configuration(boundary=boundary, objects=objects)


def load_configuration(path: PathLike) -> Configuration:
    with _open_for_reading(path) as handle:
        return read_configuration(handle, str(path))


def write_configuration(config: Configuration, stream: TextIO) -> None:
    boundary = config.boundary
    if boundary.is_rectangle:
        stream.write(f"{boundary.width:9f} {boundary.height:9f}\n")
    else:
        stream.write(f"{0.0:9f} {0.0:9f}\n")
        stream.write(f"{boundary.polygon.n_vertices}\n")
        for x, y in boundary.polygon:
            stream.write(f"{x:9f} {y:9f}\n")
    stream.write(f"{config.n_objects()}\n")
    for obj in config.objects:
        stream.write(f"{obj.molecule_type:5d} {obj.x:9f} {obj.y:9f} {obj.theta:9f}\n")


def save_configuration(config: Configuration, path: PathLike) -> None:
    with Path(path).open("w", encoding="utf-8") as handle:
        write_configuration(config, handle)


def write_frame(config: Configuration, stream: TextIO, step: int) -> None:
    stream.write(TRAJECTORY_SEPARATOR.format(step=step))
    write_configuration(config, stream)


def open_trajectory(path: PathLike) -> TextIO:
    return gzip.open(Path(path), "wt", encoding="utf-8")


def read_trajectory(path: PathLike) -> List[Tuple[int, Configuration]]:
    """Split a gzipped trajectory back into ``(step, configuration)`` frames."""
    frames: List[Tuple[int, Configuration]] = []
    step: Optional[int] = None
    block: List[str] = []
    with gzip.open(Path(path), "rt", encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if stripped.startswith("====") and stripped.endswith("====") and len(stripped) > 8:
                if step is not None:
                    frames.append((step, read_configuration(block, f"{path}@{step}")))
                step = int(stripped.strip("="))
                block = []
            else:
                block.append(line)
    if step is not None:
        frames.append((step, read_configuration(block, f"{path}@{step}")))
    return frames


# ----------------------------------------------------------------------
# Force field
# ----------------------------------------------------------------------
def read_force_field(stream: Iterable[str], source: str = "<force field>") -> ForceField:
    reader = _LineReader(stream, source)
    n_types = reader.convert(reader.next_fields("number of atom types", 1)[0], int, "number of atom types")
    if n_types <= 0:
        raise reader.error(f"Invalid number of atom types {n_types}.")
    radii = [reader.convert(tok, float, "radius") for tok in reader.next_fields("radii", n_types)]
    for radius in radii:
        if radius <= 0.0:
            raise reader.error(f"Radius must be positive, got {radius:g}.")
    colours = reader.next_fields("colours", n_types)
    cut_text, length_text = reader.next_fields("cut off and length scale", 2)
    cut_off = reader.convert(cut_text, float, "cut off")
    length = reader.convert(length_text, float, "length scale")
    if length <= 0.0:
        raise reader.error(f"Length scale must be positive, got {length:g}.")
    energies: List[List[float]] = []
    for row in range(n_types):
        fields = reader.next_fields(f"energy matrix row {row}", n_types)
        energies.append([reader.convert(tok, float, "well depth") for tok in fields])
    reader.expect_end()
    return ForceField(radii, energies, cut_off=cut_off, length=length, colours=colours)


def load_force_field(path: PathLike) -> ForceField:
    with _open_for_reading(path) as handle:
        return read_force_field(handle, str(path))


def write_force_field(force_field: ForceField, stream: TextIO) -> None:
    stream.write(f"{force_field.n_types}\n")
    stream.write(" ".join(f"{r:g}" for r in force_field.radii) + "\n")
    stream.write(" ".join(force_field.colours) + "\n")
    stream.write(f"{force_field.cut_off:g} {force_field.length:g}\n")
    for row in force_field.energies:
        stream.write(" ".join(f"{e:g}" for e in row) + "\n")


# ----------------------------------------------------------------------
# Topology
# ----------------------------------------------------------------------
def read_topology(stream: Iterable[str], source: str = "<topology>") -> Topology:
    reader = _LineReader(stream, source)
    n_types = reader.count(reader.next_fields("number of atom types", 1)[0], "number of atom types")
    atom_types: List[AtomType] = []
    for _ in range(n_types):
        name, radius_text = reader.next_fields("atom type", 2)
        radius = reader.convert(radius_text, float, "atom radius")
        if radius <= 0.0:
            raise reader.error(f"Atom type {name} must have a positive radius, got {radius:g}.")
        atom_types.append(AtomType(name, radius))

    n_molecules = reader.count(reader.next_fields("number of molecules", 1)[0], "number of molecules")
    molecules: List[MoleculeTemplate] = []
    for _ in range(n_molecules):
        molecule = MoleculeTemplate(reader.next_line("molecule name"))
        n_atoms = reader.count(reader.next_fields("number of atoms", 1)[0], "number of atoms")
        if n_atoms == 0:
            raise reader.error(f"Molecule {molecule.name} has no atoms.")
        for _ in range(n_atoms):
            type_text, x_text, y_text, colour = reader.next_fields("atom", 4)
            atom_type = reader.count(type_text, "atom type")
            if atom_type >= n_types:
                raise reader.error(f"Atom type {atom_type} out of range (only {n_types} types).")
            molecule.add_atom(
                AtomTemplate(
                    atom_type,
                    reader.convert(x_text, float, "atom dx"),
                    reader.convert(y_text, float, "atom dy"),
                    colour,
                )
            )
        molecules.append(molecule)
    reader.expect_end()
    return Topology(atom_types, molecules)


def load_topology(path: PathLike) -> Topology:
    with _open_for_reading(path) as handle:
        return read_topology(handle, str(path))


def write_topology(topology: Topology, stream: TextIO) -> None:
    stream.write(f"{topology.n_atom_types}\n")
    for atom_type in topology.atom_types:
        stream.write(f"{atom_type.name} {atom_type.radius:f}\n")
    stream.write(f"{topology.n_molecules}\n")
    for molecule in topology.molecules:
        stream.write(f"{molecule.name}\n{molecule.n_atoms}\n")
        for atom in molecule.atoms:
            stream.write(f"{atom.atom_type:3d} {atom.x:9g} {atom.y:9g} {atom.colour}\n")
