import pytest

from coderunner.config import SandboxConfig
from coderunner.sandbox.errors import UnsupportedLanguage
from coderunner.sandbox.models import Language, ResourceLimits, SandboxRequest
from coderunner.sandbox.spec_builder import SandboxSpecBuilder


@pytest.fixture
def builder() -> SandboxSpecBuilder:
    return SandboxSpecBuilder(SandboxConfig())


@pytest.mark.parametrize(
    "language, image, entrypoint",
    [
        (Language.PYTHON, "python:3.11", ("python", "-c", "print(1)")),
        (Language.NODE, "node:22", ("node", "-e", "print(1)")),
        (Language.SHELL, "alpine", ("sh", "-c", "print(1)")),
    ],
)
def test_builds_inline_entrypoint(builder, language, image, entrypoint):
    spec = builder.build(SandboxRequest(language=language, code="print(1)"))

    assert spec.image == image
    assert spec.entrypoint == entrypoint
    assert spec.resource_limits == ResourceLimits(cpu="500m", memory="128Mi")


def test_code_is_a_single_unmodified_argument(builder):
    code = 'print("a"); import os; os.system("rm -rf / $(whoami)")\n# \'"'

    spec = builder.build(SandboxRequest(language=Language.PYTHON, code=code))

    assert spec.entrypoint[-1] == code
    assert len(spec.entrypoint) == 3


def test_images_and_limits_come_from_config():
    config = SandboxConfig(python_image="python:3.12-slim", cpu_limit="250m", memory_limit="64Mi")

    spec = SandboxSpecBuilder(config).build(SandboxRequest(language=Language.PYTHON, code=""))

    assert spec.image == "python:3.12-slim"
    assert spec.resource_limits == ResourceLimits(cpu="250m", memory="64Mi")


def test_supported_languages(builder):
    assert set(builder.supported_languages) == {Language.PYTHON, Language.NODE, Language.SHELL}


def test_language_parse_accepts_sh_alias():
    assert Language.parse("sh") is Language.SHELL
    assert Language.parse("node") is Language.NODE


def test_language_parse_rejects_unknown():
    with pytest.raises(UnsupportedLanguage) as exc_info:
        Language.parse("ruby")
    assert exc_info.value.language == "ruby"
    assert str(exc_info.value) == "Unsupported language"
