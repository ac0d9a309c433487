"""Load composite mappings from the downloaded mapping archives."""

from __future__ import annotations

import logging
import zipfile
from typing import TYPE_CHECKING

from contract.errors import ResolutionError
from mapping.exceptor import EXCEPTOR_JSON, parse_exceptor_json
from mapping.mcp import (
    FIELDS_CSV,
    METHODS_CSV,
    PARAMS_CSV,
    parse_fields_csv,
    parse_methods_csv,
    parse_params_csv,
)
from mapping.model import NameMapping
from mapping.srg import JOINED_EXC, JOINED_SRG, parse_exc, parse_srg

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def _read_member(archive: zipfile.ZipFile, path: Path, member: str) -> bytes:
    try:
        return archive.read(member)
    except KeyError as exc:
        msg = f"mapping archive {path.name} has no {member}"
        raise ResolutionError(msg) from exc


def _read_text(archive: zipfile.ZipFile, path: Path, member: str) -> str:
    return _read_member(archive, path, member).decode("utf-8-sig")


def load_srg_mapping(path: Path) -> NameMapping:
    """Class, member, parameter and inner class tables of an SRG archive."""
    with zipfile.ZipFile(path) as archive:
        classes, members = parse_srg(_read_text(archive, path, JOINED_SRG))
        parameters = parse_exc(_read_text(archive, path, JOINED_EXC))
        inner_classes = parse_exceptor_json(
            _read_member(archive, path, EXCEPTOR_JSON)
        )

    logger.info(
        "event=mapping_loaded kind=srg classes=%d members=%d parameters=%d "
        "inner_classes=%d",
        len(classes),
        len(members),
        len(parameters),
        len(inner_classes),
    )
    return NameMapping(
        classes=classes,
        members=members,
        parameters=parameters,
        inner_classes=inner_classes,
    )


def load_mcp_mapping(path: Path) -> NameMapping:
    """Searge-keyed field, method and parameter names of an MCP archive.

    ``params.csv`` is optional; older snapshots do not ship it.
    """
    with zipfile.ZipFile(path) as archive:
        fields = parse_fields_csv(_read_text(archive, path, FIELDS_CSV))
        methods = parse_methods_csv(_read_text(archive, path, METHODS_CSV))
        locals_mapping = None
        if PARAMS_CSV in archive.namelist():
            locals_mapping = parse_params_csv(_read_text(archive, path, PARAMS_CSV))
        else:
            logger.warning(
                "event=mapping_member_missing archive=%s member=%s",
                path.name,
                PARAMS_CSV,
            )

    logger.info(
        "event=mapping_loaded kind=mcp fields=%d methods=%d params=%d",
        len(fields),
        len(methods),
        len(locals_mapping) if locals_mapping is not None else 0,
    )
    return NameMapping(fields=fields, methods=methods, locals=locals_mapping)


__all__ = ["load_mcp_mapping", "load_srg_mapping"]
