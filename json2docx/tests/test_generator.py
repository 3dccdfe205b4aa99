"""End-to-end tests for JsonToDocx.generate_docx."""
import os
import tempfile
import unittest

from json2docx import JsonToDocx, GenerationOptions, generate_bytes, generate_file
from json2docx.context import APPLIED, SKIPPED
from json2docx.converter_api import blank_template
from json2docx.ooxml import NS_WP, W_TBL, W_TR, cell_text

from .fixtures import (
    W, all_text, body_texts, make_template, para, part_root,
    png_bytes, read_parts, serve_bytes, table,
)

DATA = {
    "customer": {"name": "Ana Souza", "vip": True},
    "invoice": {"number": "INV-7", "due": "2024-05-01", "total": 1999.9},
    "lines": [{"item": "Desk", "qty": 1}, {"item": "Chair", "qty": 4}],
    "notes": [{"text": "fragile"}, {"text": "insured"}],
}


def generate(body_xml, data=DATA, **kwargs):
    return JsonToDocx.generate_docx(make_template(body_xml, **kwargs.pop("template", {})),
                                    data, kwargs or None, output_dir=None)


class GenerateDocxTest(unittest.TestCase):

    def test_full_document(self) -> None:
        report = generate(
            para("Invoice {invoice.number} for {customer.name}")
            + para("{#if customer.vip}Priority customer{/if}")
            + para("{#if customer.blocked}Account blocked{/if}")
            + para("Due {format:invoice.due:date}: {format:invoice.total:number}")
            + para("Notes: {#each notes as n}{n.text} {/each}")
            + para("{%table:lines}")
        )

        self.assertTrue(report.succeeded)
        self.assertEqual(body_texts(report.document), [
            "Invoice INV-7 for Ana Souza",
            "Priority customer",
            "Due 01/05/2024: 1,999.90",
            "Notes: fragile insured ",
        ])
        tbl = part_root(report.document).find(f'{W}body/{W}tbl')
        rows = [[cell_text(tc) for tc in tr.findall(f'{W}tc')] for tr in tbl.findall(W_TR)]
        self.assertEqual(rows, [["item", "qty"], ["Desk", "1"], ["Chair", "4"]])

    def test_no_directives_keeps_text(self) -> None:
        template = make_template(para("Just text.") + para("More"))
        report = JsonToDocx.generate_docx(template, {"unused": 1}, output_dir=None)
        self.assertEqual(body_texts(report.document), ["Just text.", "More"])
        before, after = read_parts(template), read_parts(report.document)
        self.assertEqual(before["word/styles.xml"], after["word/styles.xml"])
        self.assertEqual(report.outcomes, [])

    def test_no_placeholder_survives_when_data_is_complete(self) -> None:
        report = generate(para("{customer.name} {invoice.number}") + table(["{invoice.total}"]))
        text = all_text(part_root(report.document))
        self.assertNotIn("{", text)
        self.assertIn("1999.9", text)

    def test_generation_is_repeatable(self) -> None:
        template = make_template(para("{customer.name}") + para("{%table:lines}"))
        first = JsonToDocx.generate_docx(template, DATA, output_dir=None)
        second = JsonToDocx.generate_docx(template, DATA, output_dir=None)
        self.assertEqual(read_parts(first.document), read_parts(second.document))

    def test_filled_document_is_a_fixed_point(self) -> None:
        first = generate(para("Dear {customer.name}") + para("{#if customer.vip}VIP{/if}"))
        second = JsonToDocx.generate_docx(first.document, DATA, output_dir=None)
        self.assertEqual(body_texts(second.document), ["Dear Ana Souza", "VIP"])
        self.assertEqual(second.outcomes, [])

    def test_generated_table_is_not_rescanned(self) -> None:
        data = {"rows": [{"col": "{customer.name}"}], "customer": {"name": "x"}}
        report = generate(para("{%table:rows}"), data)
        tbl = part_root(report.document).find(f'{W}body/{W}tbl')
        self.assertIn("{customer.name}", all_text(tbl))

    def test_template_table_cells_are_filled(self) -> None:
        report = generate(table(["Customer", "{customer.name}"]))
        tbl = part_root(report.document).find(f'{W}body/{W}tbl')
        self.assertEqual(cell_text(tbl.findall(f'.//{W}tc')[1]), "Ana Souza")

    def test_format_table_end_to_end(self) -> None:
        data = {"orders": [{"total": 50}, {"total": 5000}]}
        report = generate(table(
            ["{format-table:orders}"],
            ["Total"],
            ["{if:total>1000}red{/if}"],
            ["{if:total>1000}red{/if}"],
        ), data)
        tbl = part_root(report.document).find(f'{W}body/{W}tbl')
        rows = tbl.findall(W_TR)
        self.assertEqual(len(rows), 3)
        self.assertIsNone(rows[1].find(f'.//{W}shd'))
        self.assertEqual(rows[2].find(f'.//{W}shd').get(f'{W}fill'), 'FF0000')

    def test_page_break(self) -> None:
        report = generate(para("one") + para("{%pagebreak}") + para("two"))
        body = part_root(report.document).find(f'{W}body')
        breaks = body.findall(f'{W}p/{W}r/{W}br')
        self.assertEqual([b.get(f'{W}type') for b in breaks], ["page"])
        self.assertEqual(body_texts(report.document), ["one", "", "two"])

    def test_report_records_outcomes(self) -> None:
        report = generate(para("{customer.name} {missing.key}"))
        statuses = {(o.key, o.status) for o in report.outcomes}
        self.assertIn(("customer.name", APPLIED), statuses)
        self.assertIn(("missing.key", SKIPPED), statuses)
        self.assertEqual(report.failures, [])


class ImageGenerationTest(unittest.TestCase):

    def test_counters_do_not_leak_between_calls(self) -> None:
        template = make_template(para("{%logo}"))
        data = {"logo": "https://x.test/logo.png"}

        for _ in range(2):
            with serve_bytes(png_bytes()):
                report = JsonToDocx.generate_docx(template, data, output_dir=None)
            parts = read_parts(report.document)
            self.assertIn("word/media/image1.png", parts)
            self.assertIn(b'Id="rId1001"', parts["word/_rels/document.xml.rels"])
            self.assertIn(b'Extension="png"', parts["[Content_Types].xml"])


class HeaderFooterTest(unittest.TestCase):

    def test_header_and_footer_text(self) -> None:
        report = generate(
            para("body"),
            header="{customer.name} - confidential",
            footer="Invoice {invoice.number}",
            template={
                "headers": {"word/header1.xml": para("old header", " text")},
                "footers": {"word/footer1.xml": ""},
            },
        )
        header = part_root(report.document, "word/header1.xml")
        footer = part_root(report.document, "word/footer1.xml")
        self.assertEqual(all_text(header), "Ana Souza - confidential")
        self.assertEqual(all_text(footer), "Invoice INV-7")
        self.assertEqual([o.key for o in report.outcomes_for("header")], ["word/header1.xml"])
        self.assertEqual(report.outcomes_for("footer")[0].status, APPLIED)

    def test_missing_parts_are_skipped(self) -> None:
        report = generate(para("body"), header="Top", watermark="DRAFT")
        self.assertTrue(report.succeeded)
        self.assertEqual(
            {(o.kind, o.status) for o in report.outcomes},
            {("header", SKIPPED), ("watermark", SKIPPED)},
        )
        self.assertNotIn("word/header1.xml", read_parts(report.document))

    def test_watermark_in_every_header(self) -> None:
        report = generate(
            para("body"),
            watermark="DRAFT",
            template={"headers": {"word/header1.xml": para("h1"), "word/header2.xml": para("h2")}},
        )
        for name in ("word/header1.xml", "word/header2.xml"):
            header = part_root(report.document, name)
            first = header[0]
            self.assertIsNotNone(first.find(f'.//{{{NS_WP}}}anchor'))
            self.assertIn("DRAFT", all_text(first))

    def test_watermark_ids_are_unique(self) -> None:
        taken = f'<wp:docPr xmlns:wp="{NS_WP}" id="3001" name="Logo"/>'
        report = generate(
            para("body"),
            watermark="DRAFT",
            template={"headers": {"word/header1.xml": para("h1") + taken,
                                  "word/header2.xml": para("h2")}},
        )
        ids = []
        for name in ("word/header1.xml", "word/header2.xml"):
            anchor = part_root(report.document, name).find(f'.//{{{NS_WP}}}anchor')
            ids.append(anchor.find(f'{{{NS_WP}}}docPr').get("id"))
        self.assertEqual(ids, ["3002", "3003"])


class FailureAndOutputTest(unittest.TestCase):

    def test_invalid_template_sets_error(self) -> None:
        report = JsonToDocx.generate_docx(b"not a zip", {}, output_dir=None)
        self.assertFalse(report.succeeded)
        self.assertIsNone(report.document)
        self.assertIn("ZIP", report.error)

    def test_saved_to_output_dir(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            report = JsonToDocx.generate_docx(
                make_template(para("{a}")), {"a": "A"}, {"fileName": "out"}, output_dir=tmp
            )
            self.assertEqual(report.output_path, os.path.join(tmp, "out.docx"))
            with open(report.output_path, "rb") as f:
                self.assertEqual(f.read(), report.document)

    def test_default_file_name(self) -> None:
        report = JsonToDocx.generate_docx(make_template(), {}, output_dir=None)
        self.assertEqual(report.file_name, "generated-document.docx")
        self.assertIsNone(report.output_path)

    def test_options_object(self) -> None:
        options = GenerationOptions(file_name="../../etc/passwd")
        report = JsonToDocx.generate_docx(make_template(), {}, options, output_dir=None)
        self.assertEqual(report.file_name, "passwd.docx")


class ConverterApiTest(unittest.TestCase):

    def test_generate_bytes(self) -> None:
        document, report = generate_bytes(make_template(para("{a}")), {"a": "x"})
        self.assertEqual(body_texts(document), ["x"])
        self.assertTrue(report.succeeded)

    def test_generate_bytes_from_blank_template(self) -> None:
        document, report = generate_bytes(
            blank_template(para("{invoice.number}")), {"invoice": {"number": "INV-1"}}
        )
        self.assertIsNone(report.error)
        self.assertEqual(body_texts(document), ["INV-1"])
        parts = read_parts(document)
        self.assertIn(b'<Default Extension="rels"', parts["[Content_Types].xml"])
        self.assertNotIn(b"ns0:", parts["[Content_Types].xml"])

    def test_generate_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            template_path = os.path.join(tmp, "template.docx")
            with open(template_path, "wb") as f:
                f.write(make_template(para("{a}")))
            output = os.path.join(tmp, "nested", "result.docx")

            report = generate_file(template_path, {"a": "y"}, output, footer="f")

            self.assertTrue(os.path.exists(output))
            self.assertEqual(report.file_name, "result.docx")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
