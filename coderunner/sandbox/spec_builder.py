"""
Maps a language to the image and argument vector of an execution unit.

The submitted code is always passed as one element of the argument vector
to the interpreter's inline-execution flag. It is never written to a file
and never spliced into a command string.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from coderunner.sandbox.errors import UnsupportedLanguage
from coderunner.sandbox.models import Language, ResourceLimits, SandboxRequest, SandboxSpec

if TYPE_CHECKING:
    from coderunner.config import SandboxConfig

# Interpreter and inline-execution flag per language
INLINE_COMMANDS: dict[Language, tuple[str, str]] = {
    Language.PYTHON: ("python", "-c"),
    Language.NODE: ("node", "-e"),
    Language.SHELL: ("sh", "-c"),
}


class SandboxSpecBuilder:
    """Builds a ``SandboxSpec`` for a validated request."""

    def __init__(self, config: "SandboxConfig") -> None:
        self._images: dict[Language, str] = {
            Language.PYTHON: config.python_image,
            Language.NODE: config.node_image,
            Language.SHELL: config.shell_image,
        }
        self._limits = ResourceLimits(cpu=config.cpu_limit, memory=config.memory_limit)

    @property
    def supported_languages(self) -> list[Language]:
        return [lang for lang in INLINE_COMMANDS if lang in self._images]

    def build(self, request: SandboxRequest) -> SandboxSpec:
        language = request.language
        if language not in INLINE_COMMANDS or language not in self._images:
            raise UnsupportedLanguage(language.value)

        interpreter, flag = INLINE_COMMANDS[language]
        return SandboxSpec(
            image=self._images[language],
            entrypoint=(interpreter, flag, request.code),
            resource_limits=self._limits,
        )
