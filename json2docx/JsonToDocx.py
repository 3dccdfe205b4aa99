import logging
import os

from .config import DEFAULT_CONFIG
from .context import GenerationContext, GenerationOptions, GenerationReport, SKIPPED, APPLIED
from .directives import SECTION, is_page_break
from .exceptions import DocxTemplateError
from .ooxml import W_P, W_TBL, W_BODY, ParentIndex, iter_outside, paragraph_text, \
    create_page_break_paragraph, create_paragraph, write_flattened_text
from .package import TemplatePackage, DOCUMENT_PART
from .paragraphs import ParagraphProcessor
from .tables import process_table
from .watermark import add_watermark, used_drawing_ids

logger = logging.getLogger('json2docx')


class JsonToDocx:
    """Fills one loaded template package with a data context.

    A new instance (and GenerationContext) is created for every call, so
    counters never leak between documents.
    """

    def __init__(self, package, data, options=None, config=None):
        self.package = package
        self.data = data if data is not None else {}
        self.options = GenerationOptions.from_mapping(options)
        self.config = config if config is not None else DEFAULT_CONFIG

        report = GenerationReport(self.options.resolved_file_name(self.config))
        self.context = GenerationContext(package, self.data, self.config, report)

    @property
    def report(self):
        return self.context.report

    def convert(self):
        """Apply every directive to the package's XML parts (in memory)."""
        document_root = self.package.require_document()
        # Synthesized when the template has none
        logger.debug("Content types loaded (%d entries)", len(self.package.content_types.root))

        if self.options.header:
            self._update_header_footer('header', self.options.header)
        if self.options.footer:
            self._update_header_footer('footer', self.options.footer)
        if self.options.watermark:
            self._add_watermarks(self.options.watermark)

        self.context.part_name = DOCUMENT_PART
        index = ParentIndex(document_root)
        self._process_page_breaks(document_root, index)

        body = document_root.find(W_BODY)
        if body is None:
            logger.warning("Document has no w:body; nothing to fill")
            return self.report

        # Snapshot before mutation: generated tables are not rescanned
        paragraphs = list(iter_outside(body, W_P, W_TBL))
        tables = list(body.iter(W_TBL))

        processor = ParagraphProcessor(self.context, index)
        for paragraph in paragraphs:
            processor.process(paragraph)
        for table in tables:
            if index.is_attached(table):
                process_table(table, self.context, processor)

        self.package.flush()
        return self.report

    # ------------------------------------------------------------------

    def _process_page_breaks(self, root, index):
        for paragraph in list(root.iter(W_P)):
            if is_page_break(paragraph_text(paragraph)):
                index.replace(paragraph, create_page_break_paragraph())
                self.context.record(SECTION, 'pagebreak', APPLIED)

    def _update_header_footer(self, kind, text):
        """Write ``text`` into the first paragraph of every header (or footer)
        part, then run the part's paragraphs through the processor."""
        pattern = self.config.HEADER_PART_PATTERN if kind == 'header' else self.config.FOOTER_PART_PATTERN
        part_names = self.package.find_parts(pattern)
        if not part_names:
            logger.warning("No %s files found in the template", kind)
            self.context.part_name = ''
            self.context.record(kind, kind, SKIPPED, f'template has no {kind} parts')
            return

        for part_name in part_names:
            root = self.package.xml_root(part_name)
            if root is None:
                continue
            self.context.part_name = part_name

            first = root.find(W_P)
            if first is None:
                first = create_paragraph()
                root.insert(0, first)
            write_flattened_text(first, text)

            index = ParentIndex(root)
            processor = ParagraphProcessor(self.context, index)
            tables = root.findall(W_TBL)
            for paragraph in list(iter_outside(root, W_P, W_TBL)):
                processor.process(paragraph)
            for table in tables:
                process_table(table, self.context, processor)

            self.context.record(kind, part_name, APPLIED)
            logger.debug("Updated %s part %s", kind, part_name)

    def _add_watermarks(self, text):
        part_names = self.package.find_parts(self.config.HEADER_PART_PATTERN)
        if not part_names:
            logger.warning("No header files found to add watermark")
            self.context.part_name = ''
            self.context.record('watermark', text, SKIPPED, 'template has no header parts')
            return

        # wp:docPr ids must be unique across the document and its headers
        used = used_drawing_ids(self.package.xml_root(name) for name in [DOCUMENT_PART] + part_names)
        for part_name in part_names:
            root = self.package.xml_root(part_name)
            if root is None:
                continue
            self.context.part_name = part_name
            doc_pr_id = self.config.WATERMARK_DOC_PR_BASE + self.context.next_watermark_number()
            while doc_pr_id in used:
                doc_pr_id = self.config.WATERMARK_DOC_PR_BASE + self.context.next_watermark_number()
            used.add(doc_pr_id)
            add_watermark(root, text, self.config, doc_pr_id)
            self.context.record('watermark', text, APPLIED)
        logger.info("Watermark added to %d header part(s)", len(part_names))

    # ------------------------------------------------------------------

    @staticmethod
    def generate_docx(template, data, options=None, output_dir='.', config=None):
        """
        Fill a DOCX template with ``data``.

        Args:
            template: Template path, raw bytes or binary file object
            data: JSON-compatible mapping used to resolve placeholders
            options: GenerationOptions or mapping (fileName/file_name, header,
                     footer, watermark)
            output_dir: Directory the document is saved in; None skips saving
            config: Optional GenerationConfig instance

        Returns:
            GenerationReport: never raises; ``report.error`` is set and
            ``report.document`` is None when generation failed
        """
        if config is None:
            config = DEFAULT_CONFIG
        options = GenerationOptions.from_mapping(options)
        report = GenerationReport(options.resolved_file_name(config))

        try:
            package = TemplatePackage.load(template, config)
            converter = JsonToDocx(package, data, options, config)
            report = converter.report
            converter.convert()

            if output_dir is not None:
                output_path = os.path.join(output_dir, report.file_name)
                report.document = package.save(output_path)
                report.output_path = output_path
            else:
                report.document = package.to_bytes()
        except DocxTemplateError as e:
            logger.error("Error generating document: %s", e)
            report.error = str(e)
            report.document = None
            report.output_path = None
        except Exception as e:
            logger.error("Error generating document: %s", e, exc_info=True)
            report.error = f"{type(e).__name__}: {e}"
            report.document = None
            report.output_path = None
        else:
            logger.info("Document generation completed successfully: %s (%d failed directive(s))",
                        report.file_name, len(report.failures))

        return report
