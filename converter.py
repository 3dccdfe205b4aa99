import sys
import os
import json
import json2docx

def fill_template(template_file, data_file, output_file):
    """
    Fills a DOCX template with the JSON object stored in data_file.
    """
    for path in (template_file, data_file):
        if not os.path.exists(path):
            print(f"Error: Input file '{path}' not found.")
            return

    with open(data_file, 'r', encoding='utf-8') as f:
        data = json.load(f)

    report = json2docx.generate_file(template_file, data, output_file)
    if report.succeeded:
        print(f"Successfully filled '{template_file}' into '{output_file}'.")
        for outcome in report.failures:
            print(f"  failed {outcome.kind} '{outcome.key}': {outcome.reason}")
    else:
        print(f"An error occurred during generation: {report.error}")

if __name__ == "__main__":
    if len(sys.argv) < 4:
        print("Usage: python3 converter.py <template.docx> <data.json> <output.docx>")
    else:
        fill_template(sys.argv[1], sys.argv[2], sys.argv[3])
