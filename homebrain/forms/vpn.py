"""
VPN Query Form

Starts, stops and reports VPN connections through the ansible worker.

"vpn start france paris" lists the VPN folder, keeps the files of the
requested country and narrows them with the words after the country.
Files may name the country by an alias ("vpn_uk_london.ovpn"), so the
aliases of the requested country are tried after its own name.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence, Tuple

from homebrain.adapters.text.tokenizer import COUNTRY_ALIASES

from homebrain.core.disambiguator import normalize_resource_name, pick, tokens_from
from homebrain.core.entities import ActionType, DispatchRequest, Form, Token
from homebrain.core.errors import LookupFailureError
from homebrain.core.ports import ConfigPort, FileEnumeratorPort
from homebrain.core.slots import Resolved
from homebrain.forms.base import BaseQueryForm

logger = logging.getLogger(__name__)

LOCATION_PROP = "VPN location"

DESCRIPTOR = {
    "name": "VPN Form",
    "globalKeywords": ["vpn"],
    "channelKey": "Queues.Ansible",
    "actions": [
        {
            "actionType": "VpnStart",
            "keywords": ["start"],
            "props": [
                {
                    "name": LOCATION_PROP,
                    "type": "country",
                    "clarifyingQuestion": "In which country turn on VPN?",
                },
            ],
        },
        {"actionType": "VpnStop", "keywords": ["stop"]},
        {"actionType": "VpnStatus", "keywords": ["status"]},
    ],
}


def file_stem(file_name: str) -> str:
    """Name before the first dot: "vpn_france_paris.ovpn" -> "vpn_france_paris"."""
    return file_name.split(".", 1)[0]


class VpnQueryForm(BaseQueryForm):
    """VPN form backed by a folder of configuration files."""

    def __init__(
        self,
        config: ConfigPort,
        files: FileEnumeratorPort,
        aliases: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.files = files
        self.aliases = COUNTRY_ALIASES if aliases is None else aliases
        super().__init__(
            Form.from_descriptor(DESCRIPTOR),
            {
                ActionType.VPN_START: self._start,
                ActionType.VPN_STOP: self._no_props,
                ActionType.VPN_STATUS: self._no_props,
            },
            config,
        )

    async def _start(self, resolved: Resolved, tokens: Sequence[Token]) -> DispatchRequest:
        location = resolved.token(LOCATION_PROP)
        folder = self.config.get("VPN.FolderFilesPath")
        files = await self.files.get_dir_files(folder)

        variant, candidates = self._files_for(location.value, files)
        if not candidates:
            raise LookupFailureError(
                f"No VPN files for '{location.value}' in {folder}",
                user_message=f"I have no VPN configuration for {location.value}",
            )

        strict = self.config.get("Dialogue.StrictDisambiguation", True)
        # Narrow with the name the files use for the country
        anchor = Token(location.type, variant, location.position)
        following = [t for t in tokens_from(tokens, location) if t.position != location.position]
        chosen = pick(candidates, [anchor] + following, strict=strict)
        logger.info(f"VPN file for '{location.value}': {chosen}")

        return DispatchRequest(
            name=ActionType.VPN_START,
            props={"vpnFileName": file_stem(chosen)},
        )

    def _files_for(self, country: str, files: Sequence[str]) -> Tuple[str, List[str]]:
        """
        Returns the first name of the country that matches any file, and
        the files it matches.

        The country name matches anywhere in a file name; an alias only as
        a whole word, so "uk" does not match "ukraine".
        """
        names = [normalize_resource_name(f) for f in files]

        needle = normalize_resource_name(country)
        matched = [f for f, name in zip(files, names) if needle in name]
        if matched:
            return country, matched

        aliases = sorted((a for a, c in self.aliases.items() if c == country), key=len, reverse=True)
        for alias in aliases:
            needle = f" {normalize_resource_name(alias)} "
            matched = [f for f, name in zip(files, names) if needle in f" {name} "]
            if matched:
                return alias, matched

        return country, []
