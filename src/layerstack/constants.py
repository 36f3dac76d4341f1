"""
Various constants for layerstack
"""

from enum import Enum, IntEnum


class ColorMode(IntEnum):
    """
    Color mode.
    """

    BITMAP = 0
    GRAYSCALE = 1
    INDEXED = 2
    RGB = 3
    CMYK = 4
    MULTICHANNEL = 7
    DUOTONE = 8
    LAB = 9


class BlendMode(str, Enum):
    """
    Blend modes understood by the compositor.

    Values are the identifiers used in layer snapshots.
    """

    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"
    DARKEN = "darken"
    LIGHTEN = "lighten"
    COLOR_DODGE = "color-dodge"
    COLOR_BURN = "color-burn"
    HARD_LIGHT = "hard-light"
    SOFT_LIGHT = "soft-light"
    DIFFERENCE = "difference"
    EXCLUSION = "exclusion"
    HUE = "hue"
    SATURATION = "saturation"
    COLOR = "color"
    LUMINOSITY = "luminosity"


class BlendKey(Enum):
    """
    Blend mode keys as stored in layer records.
    """

    PASS_THROUGH = b"pass"
    NORMAL = b"norm"
    DISSOLVE = b"diss"
    DARKEN = b"dark"
    MULTIPLY = b"mul "
    COLOR_BURN = b"idiv"
    LINEAR_BURN = b"lbrn"
    DARKER_COLOR = b"dkCl"
    LIGHTEN = b"lite"
    SCREEN = b"scrn"
    COLOR_DODGE = b"div "
    LINEAR_DODGE = b"lddg"
    LIGHTER_COLOR = b"lgCl"
    OVERLAY = b"over"
    SOFT_LIGHT = b"sLit"
    HARD_LIGHT = b"hLit"
    VIVID_LIGHT = b"vLit"
    LINEAR_LIGHT = b"lLit"
    PIN_LIGHT = b"pLit"
    HARD_MIX = b"hMix"
    DIFFERENCE = b"diff"
    EXCLUSION = b"smud"
    SUBTRACT = b"fsub"
    DIVIDE = b"fdiv"
    HUE = b"hue "
    SATURATION = b"sat "
    COLOR = b"colr"
    LUMINOSITY = b"lum "


class AdjustmentKind(str, Enum):
    """
    Adjustment layer kinds.
    """

    BRIGHTNESS_CONTRAST = "brightness-contrast"
    LEVELS = "levels"
    CURVES = "curves"
    HUE_SATURATION = "hue-saturation"
    COLOR_BALANCE = "color-balance"
    BLACK_WHITE = "black-white"
    INVERT = "invert"
    POSTERIZE = "posterize"
    THRESHOLD = "threshold"
    GRADIENT_MAP = "gradient-map"
    PHOTO_FILTER = "photo-filter"
    VIBRANCE = "vibrance"


class ChannelID(IntEnum):
    """
    Channel types.
    """

    CHANNEL_0 = 0  # Red, Gray
    CHANNEL_1 = 1  # Green
    CHANNEL_2 = 2  # Blue
    CHANNEL_3 = 3
    TRANSPARENCY_MASK = -1
    USER_LAYER_MASK = -2
    REAL_USER_LAYER_MASK = -3


class Clipping(IntEnum):
    """Clipping."""

    BASE = 0
    NON_BASE = 1


class GlobalLayerMaskKind(IntEnum):
    """Global layer mask kind."""

    COLOR_SELECTED = 0
    COLOR_PROTECTED = 1
    PER_LAYER = 128


class Compression(IntEnum):
    """
    Compression modes.

    Compression. 0 = Raw Data, 1 = RLE compressed, 2 = ZIP without prediction,
    3 = ZIP with prediction.
    """

    RAW = 0
    RLE = 1
    ZIP = 2
    ZIP_WITH_PREDICTION = 3


class SectionDivider(IntEnum):
    OTHER = 0
    OPEN_FOLDER = 1
    CLOSED_FOLDER = 2
    BOUNDING_SECTION_DIVIDER = 3


class ProtectedFlags(IntEnum):
    """Layer lock flags."""

    TRANSPARENCY = 1
    COMPOSITE = 2
    POSITION = 4
    NESTING = 8
    COMPLETE = 2147483648


class Resource(IntEnum):
    """
    Image resource keys handled by layerstack.
    """

    RESOLUTION_INFO = 1005
    THUMBNAIL_RESOURCE_PS4 = 1033
    THUMBNAIL_RESOURCE = 1036
    ICC_PROFILE = 1039
    VERSION_INFO = 1057


class Tag(Enum):
    """Tagged blocks keys."""

    BLACK_AND_WHITE = b"blwh"
    BRIGHTNESS_AND_CONTRAST = b"brit"
    COLOR_BALANCE = b"blnc"
    CURVES = b"curv"
    GRADIENT_MAP = b"grdm"
    HUE_SATURATION = b"hue2"
    HUE_SATURATION_V4 = b"hue "
    INVERT = b"nvrt"
    LAYER_ID = b"lyid"
    LEVELS = b"levl"
    NESTED_SECTION_DIVIDER_SETTING = b"lsdk"
    PHOTO_FILTER = b"phfl"
    POSTERIZE = b"post"
    PROTECTED_SETTING = b"lspf"
    SECTION_DIVIDER_SETTING = b"lsct"
    THRESHOLD = b"thrs"
    UNICODE_LAYER_NAME = b"luni"
    VIBRANCE = b"vibA"
