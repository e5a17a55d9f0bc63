import pytest

from flowpump import config
from flowpump.config import version_string


def test_version_string_matches_firmware_format():
    assert version_string(1, 0, 3) == "v1.0.3"


def test_firmware_version_string_built_from_parts():
    assert config.FW_VERSION_STRING == version_string(
        config.FW_VERSION_MAJOR, config.FW_VERSION_MINOR, config.FW_VERSION_PATCH
    )


@pytest.mark.parametrize("parts", [(0, 0, 0), (1, 0, 3), (12, 34, 56)])
def test_version_string_round_trip(parts):
    text = version_string(*parts)
    assert text.startswith("v")
    assert tuple(int(p) for p in text[1:].split(".")) == parts


def test_version_string_has_three_dotted_parts():
    text = version_string(2, 10, 7)
    assert text.count(".") == 2
    assert text == "v2.10.7"