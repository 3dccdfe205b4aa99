"""Tests for chart parts and the header watermark shape."""
import unittest
import xml.etree.ElementTree as ET

from json2docx.charts import build_chart_part, build_chart_space, embed_chart, CHART_CONTENT_TYPE
from json2docx.config import DEFAULT_CONFIG
from json2docx.context import GenerationContext
from json2docx.exceptions import ChartError
from json2docx.ooxml import NS_A, NS_C, NS_R, NS_WP, NS_WPS, RELTYPE_CHART
from json2docx.package import TemplatePackage
from json2docx.watermark import add_watermark, create_watermark_paragraph, used_drawing_ids

from .fixtures import W

C = f"{{{NS_C}}}"
ROWS = [{"label": "Jan", "value": 10}, {"label": "Feb", "value": "12.5"}]


class ChartSpaceTest(unittest.TestCase):

    def test_bar_chart_has_axes(self) -> None:
        space = build_chart_space("bar", ROWS, "Sales")
        plot_area = space.find(f'{C}chart/{C}plotArea')
        self.assertIsNotNone(plot_area.find(f'{C}barChart'))
        self.assertIsNotNone(plot_area.find(f'{C}catAx'))
        self.assertIsNotNone(plot_area.find(f'{C}valAx'))
        title = space.find(f'{C}chart/{C}title')
        self.assertEqual(''.join(t.text for t in title.iter(f'{{{NS_A}}}t')), "Sales")

    def test_pie_chart_has_no_axes(self) -> None:
        space = build_chart_space("pie", ROWS)
        plot_area = space.find(f'{C}chart/{C}plotArea')
        self.assertIsNotNone(plot_area.find(f'{C}pieChart'))
        self.assertIsNone(plot_area.find(f'{C}catAx'))

    def test_series_caches(self) -> None:
        space = build_chart_space("line", ROWS)
        series = space.find(f'.//{C}lineChart/{C}ser')
        categories = [v.text for v in series.iter(f'{C}v') if v.text in ("Jan", "Feb")]
        self.assertEqual(categories, ["Jan", "Feb"])
        values = series.find(f'{C}val')
        self.assertEqual([v.text for v in values.iter(f'{C}v')], ["10", "12.5"])

    def test_default_title(self) -> None:
        space = build_chart_space("bar", ROWS)
        title = space.find(f'{C}chart/{C}title')
        self.assertIn(DEFAULT_CONFIG.CHART_DEFAULT_TITLE, ''.join(title.itertext()))

    def test_invalid_input(self) -> None:
        with self.assertRaises(ChartError):
            build_chart_space("radar", ROWS)
        with self.assertRaises(ChartError):
            build_chart_space("bar", [])
        with self.assertRaises(ChartError):
            build_chart_space("bar", [{"label": "a", "value": "lots"}])
        with self.assertRaises(ChartError):
            build_chart_space("bar", ["row"])

    def test_part_bytes_parse(self) -> None:
        data = build_chart_part("bar", ROWS)
        self.assertTrue(data.startswith(b'<?xml'))
        self.assertEqual(ET.fromstring(data).tag, f'{C}chartSpace')


class EmbedChartTest(unittest.TestCase):

    def test_registers_part_relationship_and_override(self) -> None:
        package = TemplatePackage.blank()
        context = GenerationContext(package, {})

        paragraph = embed_chart("bar", ROWS, "Sales", context)

        self.assertTrue(package.has_part("word/charts/chart1.xml"))
        rels = package.relationships_for("word/document.xml")
        self.assertEqual(rels.target_of("rId2001"), "charts/chart1.xml")
        self.assertEqual(package.content_types.content_type_for("word/charts/chart1.xml"), CHART_CONTENT_TYPE)
        chart_ref = paragraph.find(f'.//{C}chart')
        self.assertEqual(chart_ref.get(f'{{{NS_R}}}id'), "rId2001")
        extent = paragraph.find(f'.//{{{NS_WP}}}extent')
        self.assertEqual(extent.get("cx"), str(DEFAULT_CONFIG.CHART_DEFAULT_WIDTH * 9525))

    def test_second_chart_gets_next_number(self) -> None:
        package = TemplatePackage.blank()
        context = GenerationContext(package, {})
        embed_chart("bar", ROWS, None, context)
        embed_chart("pie", ROWS, None, context)
        rels = package.relationships_for("word/document.xml")
        self.assertEqual(rels.target_of("rId2002"), "charts/chart2.xml")

    def test_failure_adds_nothing(self) -> None:
        package = TemplatePackage.blank()
        before = set(package.part_names())
        with self.assertRaises(ChartError):
            embed_chart("radar", ROWS, None, GenerationContext(package, {}))
        self.assertEqual(set(package.part_names()), before)

    def test_header_chart_target_is_relative(self) -> None:
        package = TemplatePackage.blank()
        context = GenerationContext(package, {})
        context.part_name = "word/header1.xml"
        embed_chart("line", ROWS, None, context)
        rels = package.relationships_for("word/header1.xml")
        self.assertEqual(rels.target_of("rId2001"), "charts/chart1.xml")
        self.assertEqual(rels.root[0].get("Type"), RELTYPE_CHART)


class WatermarkTest(unittest.TestCase):

    def test_shape_properties(self) -> None:
        paragraph = create_watermark_paragraph("CONFIDENTIAL", DEFAULT_CONFIG, 3001)
        anchor = paragraph.find(f'.//{{{NS_WP}}}anchor')
        self.assertEqual(anchor.get("behindDoc"), "1")
        self.assertEqual(anchor.find(f'{{{NS_WP}}}docPr').get("id"), "3001")
        self.assertEqual(anchor.find(f'{{{NS_WP}}}positionH').get("relativeFrom"), "page")

        shape = paragraph.find(f'.//{{{NS_WPS}}}wsp')
        xfrm = shape.find(f'{{{NS_WPS}}}spPr/{{{NS_A}}}xfrm')
        self.assertEqual(xfrm.get("rot"), str(45 * 60000))

        run_props = shape.find(f'.//{W}r/{W}rPr')
        self.assertEqual(run_props.find(f'{W}color').get(f'{W}val'), "CCCCCC")
        self.assertEqual(run_props.find(f'{W}sz').get(f'{W}val'), "120")
        self.assertEqual(''.join(t.text for t in shape.iter(f'{W}t')), "CONFIDENTIAL")

    def test_inserted_first(self) -> None:
        header = ET.fromstring(f'<w:hdr xmlns:w="{W[1:-1]}"><w:p/></w:hdr>')
        add_watermark(header, "DRAFT", DEFAULT_CONFIG, 3001)
        self.assertEqual(len(header), 2)
        self.assertIsNotNone(header[0].find(f'.//{{{NS_WPS}}}wsp'))

    def test_used_drawing_ids(self) -> None:
        header = ET.fromstring(
            f'<w:hdr xmlns:w="{W[1:-1]}" xmlns:wp="{NS_WP}">'
            '<wp:docPr id="7"/><wp:docPr id="x"/></w:hdr>'
        )
        add_watermark(header, "DRAFT", DEFAULT_CONFIG, 3002)
        self.assertEqual(used_drawing_ids([header, None]), {7, 3002})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
