import argparse
import logging
from typing import Optional, Union

from layerstack.api.document import Document
from layerstack.api.layers import Layer
from layerstack.codec import estimate_size, validate_for_export
from layerstack.composite import composite_layer
from layerstack.psd import PSD
from layerstack.version import __version__

try:
    from IPython.lib.pretty import pprint
except ImportError:
    from pprint import pprint

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="layerstack command line utility.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Be more verbose.")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--encoding",
        default="macroman",
        help="Encoding of pascal strings in the file (default: macroman).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Export PSD or layer as PNG")
    export_parser.add_argument(
        "input_file",
        help="Input PSD file (optionally with layer index, e.g. file.psd[0])",
    )
    export_parser.add_argument("output_file", help="Output image file")

    show_parser = subparsers.add_parser("show", help="Show the layer tree")
    show_parser.add_argument("input_file", help="Input PSD file")

    debug_parser = subparsers.add_parser("debug", help="Show debug info for PSD file")
    debug_parser.add_argument("input_file", help="Input PSD file")

    info_parser = subparsers.add_parser(
        "info", help="Show the export size estimate and warnings"
    )
    info_parser.add_argument("input_file", help="Input PSD file")

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> Optional[int]:
    args = parse_args(argv)

    logging.basicConfig(level=logging.WARNING)
    package_logger = logging.getLogger("layerstack")
    if args.verbose:
        package_logger.setLevel(logging.DEBUG)
    else:
        package_logger.setLevel(logging.INFO)

    if args.command == "export":
        input_parts = args.input_file.split("[")
        input_file = input_parts[0]
        if len(input_parts) > 1:
            indices = [int(x.rstrip("]")) for x in input_parts[1:]]
        else:
            indices = []
        document = Document.open(input_file, encoding=args.encoding)
        layer: Union[Document, Layer] = document
        for index in indices:
            # Document and Group both support indexing
            layer = layer[index]  # type: ignore[index]
        if isinstance(layer, Document):
            image = layer.topil()
        else:
            image = composite_layer(layer).topil()
        if image is None:
            logger.error("Nothing to export in %r" % layer)
            return 1
        image.save(args.output_file)

    elif args.command == "show":
        document = Document.open(args.input_file, encoding=args.encoding)
        pprint(document)

    elif args.command == "debug":
        with open(args.input_file, "rb") as f:
            psd = PSD.read(f, encoding=args.encoding)
        pprint(psd)

    elif args.command == "info":
        document = Document.open(args.input_file, encoding=args.encoding)
        pprint(
            {
                "document": repr(document),
                "size": estimate_size(document),
                "export": validate_for_export(document),
            }
        )

    return None
