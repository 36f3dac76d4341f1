import logging

import pytest

from layerstack.constants import ColorMode, Compression
from layerstack.errors import BadSignature, TruncatedData
from layerstack.psd import PSD
from layerstack.psd.header import FileHeader
from layerstack.psd.image_data import ImageData
from layerstack.psd.image_resources import ImageResources

from ..utils import check_read_write

logger = logging.getLogger(__name__)


@pytest.fixture
def psd() -> PSD:
    header = FileHeader(channels=3, width=2, height=2, color_mode=ColorMode.RGB)
    image_data = ImageData(compression=Compression.RLE)
    image_data.set_data([b"\x00" * 4, b"\x80" * 4, b"\xff" * 4], header)
    return PSD(
        header=header, image_resources=ImageResources.new(), image_data=image_data
    )


def test_psd_write_read(psd: PSD) -> None:
    data = psd.tobytes()
    assert data.startswith(b"8BPS")
    check_read_write(PSD, data)
    new_psd = PSD.frombytes(data)
    assert new_psd.header == psd.header
    assert new_psd.image_data.get_data(new_psd.header)[1] == b"\x80" * 4
    assert list(new_psd._iter_layers()) == []


def test_psd_bad_signature(psd: PSD) -> None:
    with pytest.raises(BadSignature):
        PSD.frombytes(b"\x89PNG" + psd.tobytes()[4:])


def test_psd_truncated(psd: PSD) -> None:
    with pytest.raises(TruncatedData):
        PSD.frombytes(psd.tobytes()[:40])
