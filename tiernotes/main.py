# tiernotes/main.py
import logging
import os

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from .classifier import build_classifier
from .config import get_settings
from .errors import DocumentParseError
from .pipeline import NotesPipeline

# ------------------ Load settings ------------------
settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
log = logging.getLogger(__name__)

# ------------------ Initialize app & pipeline ------------------
app = FastAPI(title="Tiered Notes API")

classifier = build_classifier(settings)
pipeline = NotesPipeline(
    classifier,
    output_dir=settings.output_dir,
    max_pages=settings.max_pages,
)

# ------------------ Schemas ------------------
class NotesOut(BaseModel):
    message: str
    easy: str
    medium: str
    hard: str

# ------------------ Health ------------------
@app.get("/health")
async def health():
    return {"status": "ok"}

# ------------------ Upload PDF ------------------
@app.post("/api/uploads", response_model=NotesOut)
async def upload_notes(file: UploadFile = File(...)):
    """
    Upload a lecture PDF and receive easy, medium and hard notes PDFs,
    each base64-encoded. Copies are written to the output directory.
    """
    data = await file.read()
    log.info("Received %s (%d bytes)", file.filename or "upload", len(data))

    try:
        result = await run_in_threadpool(pipeline.process, data)
    except DocumentParseError as e:
        log.warning("Rejected upload: %s", e)
        raise HTTPException(status_code=500, detail=f"Uploaded file is not a readable PDF: {str(e)}")
    except Exception as e:
        log.exception("Processing failed")
        raise HTTPException(status_code=500, detail=f"Error processing PDF: {str(e)}")

    return NotesOut(
        message="PDF processed and notes generated!",
        easy=result.easy,
        medium=result.medium,
        hard=result.hard,
    )


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("tiernotes.main:app", host="0.0.0.0", port=port)
