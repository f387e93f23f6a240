"""
Homebrain Query Forms Package

Vocabulary domains of the assistant and the handlers that build worker requests.
"""

from typing import List

from homebrain.core.ports import ConfigPort, FileEnumeratorPort
from homebrain.forms.base import BaseQueryForm
from homebrain.forms.lights import LightsQueryForm
from homebrain.forms.music import MusicQueryForm
from homebrain.forms.vpn import VpnQueryForm


def create_forms(config: ConfigPort, files: FileEnumeratorPort) -> List[BaseQueryForm]:
    """Builds every form in registration order."""
    return [
        VpnQueryForm(config, files),
        LightsQueryForm(config),
        MusicQueryForm(config),
    ]


__all__ = [
    "BaseQueryForm",
    "VpnQueryForm",
    "LightsQueryForm",
    "MusicQueryForm",
    "create_forms",
]
