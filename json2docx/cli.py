"""
json2docx - fill DOCX templates with JSON data

Command-line entry point: reads a template and a data file, writes the
generated document.
"""

import argparse
import sys
import os
import logging

from .JsonToDocx import JsonToDocx
from .config import DEFAULT_CONFIG
from .converter_api import blank_template
from .data_loader import load_data
from .exceptions import DocxTemplateError

__version__ = "0.1.0"

logger = logging.getLogger('json2docx')


def setup_logging(verbose=False, quiet=False):
    """Configure logging based on CLI flags.

    Args:
        verbose: If True, show DEBUG level messages
        quiet: If True, suppress all non-error output
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    root_logger = logging.getLogger('json2docx')
    root_logger.setLevel(level)
    root_logger.addHandler(handler)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="json2docx",
        description="Fill a DOCX template with JSON data.",
        epilog="Examples:\n"
               "  json2docx template.docx data.json -o invoice.docx\n"
               "  json2docx template.docx data.json --header 'Invoice {number}' --watermark DRAFT\n"
               "  json2docx --blank data.json -o empty.docx\n"
               "  json2docx template.docx meta.md -o output.docx --verbose",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument("template", nargs="?", default=None,
                        help="Template .docx file (omit with --blank)")
    parser.add_argument("data_file",
                        help="Data file: .json, or a document with YAML front matter")
    parser.add_argument("-o", "--output", default=None,
                        help=f"Output .docx file (default: {DEFAULT_CONFIG.DEFAULT_FILE_NAME})")
    parser.add_argument("--header", default=None, help="Header text (may contain placeholders)")
    parser.add_argument("--footer", default=None, help="Footer text (may contain placeholders)")
    parser.add_argument("--watermark", default=None, help="Watermark text added to header parts")
    parser.add_argument("--blank", action="store_true", default=False,
                        help="Use a built-in blank template instead of TEMPLATE")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", action="store_true", default=False,
                        help="Show detailed debug output")
    parser.add_argument("-q", "--quiet", action="store_true", default=False,
                        help="Suppress all non-error output")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    if args.blank:
        if args.template is not None:
            logger.error("TEMPLATE and --blank are mutually exclusive")
            return 1
        template = blank_template()
    else:
        if args.template is None:
            logger.error("A template file is required (or pass --blank)")
            return 1
        if not os.path.exists(args.template):
            logger.error("Template file not found: %s", args.template)
            return 1
        if os.path.splitext(args.template)[1].lower() != '.docx':
            logger.warning("Template does not have a .docx extension: %s", args.template)
        template = args.template

    try:
        data = load_data(args.data_file)
    except DocxTemplateError as e:
        logger.error("%s", e)
        return 1

    output = args.output or DEFAULT_CONFIG.DEFAULT_FILE_NAME
    options = {
        'file_name': os.path.basename(output),
        'header': args.header,
        'footer': args.footer,
        'watermark': args.watermark,
    }
    output_dir = os.path.dirname(os.path.abspath(output))

    report = JsonToDocx.generate_docx(template, data, options, output_dir)
    if not report.succeeded:
        logger.error("Generation failed: %s", report.error)
        return 1

    for outcome in report.failures:
        logger.warning("Failed %s directive '%s' (%s): %s",
                       outcome.kind, outcome.key, outcome.part, outcome.reason)
    logger.info("Successfully generated %s (%d directive(s) applied)",
                report.output_path, len(report.applied))
    return 0


if __name__ == "__main__":
    sys.exit(main())
