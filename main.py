from fastapi import FastAPI, UploadFile, File, Form, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
import logging
import json2docx
from json2docx.data_loader import parse_data_string

logger = logging.getLogger('json2docx')
logger.setLevel(logging.INFO)
if not logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    logger.addHandler(_handler)

app = FastAPI(title="JSON to DOCX Template API")

# Enable CORS for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/generate")
@app.post("/api/generate")  # Support both paths
async def generate_document(
    template: UploadFile = File(...),
    data: str = Form("{}"),
    file_name: str = Form(None),
    header: str = Form(None),
    footer: str = Form(None),
    watermark: str = Form(None),
):
    try:
        context = parse_data_string(data)
    except json2docx.DataError as e:
        raise HTTPException(status_code=400, detail=str(e))

    template_bytes = await template.read()
    options = json2docx.GenerationOptions(
        file_name=file_name,
        header=header,
        footer=footer,
        watermark=watermark,
    )

    # Generation is synchronous (urllib fetches); keep it off the event loop
    document, report = await run_in_threadpool(
        json2docx.generate_bytes, template_bytes, context, options
    )
    if document is None:
        raise HTTPException(status_code=500, detail=report.error or "Generation failed")

    return Response(
        content=document,
        media_type=json2docx.DEFAULT_CONFIG.DOCX_MIME_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{header_safe(report.file_name)}"',
            "X-Directive-Failures": str(len(report.failures)),
        },
    )


def header_safe(name):
    """ASCII-only file name for the Content-Disposition header."""
    safe = name.encode("ascii", "ignore").decode("ascii").replace('"', "")
    return safe or json2docx.DEFAULT_CONFIG.DEFAULT_FILE_NAME


@app.get("/health")
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
