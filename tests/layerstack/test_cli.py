import logging

import pytest
from PIL import Image

from layerstack import Document, RasterLayer
from layerstack.cli import main, parse_args

logger = logging.getLogger(__name__)


@pytest.fixture
def psd_file(document: Document, tmp_path) -> str:
    path = str(tmp_path / "fixture.psd")
    document.save(path)
    return path


def test_parse_args() -> None:
    args = parse_args(["--encoding", "utf-8", "show", "input.psd"])
    assert args.command == "show"
    assert args.encoding == "utf-8"
    assert args.input_file == "input.psd"
    assert not args.verbose

    with pytest.raises(SystemExit):
        parse_args([])


def test_export_document(psd_file: str, tmp_path) -> None:
    output = str(tmp_path / "out.png")
    assert main(["export", psd_file, output]) is None
    with Image.open(output) as image:
        assert image.size == (4, 4)
        assert image.mode == "RGBA"


@pytest.mark.parametrize("suffix, size", [("[1]", (2, 2)), ("[2][0]", (4, 4))])
def test_export_layer(psd_file: str, tmp_path, suffix: str, size: tuple) -> None:
    output = str(tmp_path / "layer.png")
    assert main(["-v", "export", psd_file + suffix, output]) is None
    with Image.open(output) as image:
        assert image.size == size


def test_export_empty_layer(tmp_path) -> None:
    document = Document(2, 2)
    document.add_layer(RasterLayer(name="Empty"))
    path = str(tmp_path / "empty.psd")
    document.save(path)
    output = tmp_path / "empty.png"
    assert main(["export", path + "[0]", str(output)]) == 1
    assert not output.exists()


@pytest.mark.parametrize(
    "command, expected",
    [
        ("show", "Document("),
        ("debug", "PSD"),
        ("info", "can_export"),
    ],
)
def test_print_commands(psd_file: str, capsys, command: str, expected: str) -> None:
    assert main([command, psd_file]) is None
    captured = capsys.readouterr()
    assert expected in captured.out
