from fastapi import FastAPI, status, Depends, File, Form, Request, UploadFile
import os
import logging
from datetime import datetime
from typing import List, Optional
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel

from sheet_processor import EXPECTED_HEADERS, READ_ERROR, RowData, SheetProcessor
from utils.result import Result
from viewer_state import ViewerSnapshot, ViewerState


# Create logs directory if it doesn't exist
LOG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")
os.makedirs(LOG_DIR, exist_ok=True)

# Jinja2 templates for the viewer page
TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(LOG_DIR, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)

templates = Jinja2Templates(directory=TEMPLATES_DIR)


# Initialize FastAPI app with metadata
app = FastAPI(
    title="XLSX Data Viewer",
    description="Upload, view, and filter spreadsheet data by Cod.SEC",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Single in-process data set
app.state.viewer = ViewerState()


class SearchRequest(BaseModel):
    """
    Schema for a search update.

    Attributes:
        search_term: Text matched against Cod.SEC; empty shows every row
    """
    search_term: str = ""


def get_viewer(request: Request) -> ViewerState:
    return request.app.state.viewer


async def handle_upload(viewer: ViewerState, file: UploadFile) -> Result[List[RowData]]:
    """
    Read an uploaded file once and load it into the viewer.

    Args:
        viewer: State to update
        file: The uploaded spreadsheet

    Returns:
        Result[List[RowData]]: Parsed rows, or the failure recorded on the viewer
    """
    viewer.begin_upload(file.filename)

    try:
        content = await file.read()
    except Exception as e:
        logger.exception(f"Error reading uploaded file: {str(e)}")
        result = Result.unreadable(READ_ERROR)
    else:
        result = await run_in_threadpool(SheetProcessor.parse_workbook, content, file.filename)

    if result.is_success():
        viewer.load_rows(result.unwrap([]))
    else:
        viewer.fail(result.error)
    return result


def _has_file(file: Optional[UploadFile]) -> bool:
    return file is not None and bool(file.filename)


# Page endpoints
@app.get("/", response_class=HTMLResponse, tags=["Viewer Page"])
async def index(request: Request, viewer: ViewerState = Depends(get_viewer)):
    """
    Render the viewer page: upload form, Cod.SEC filter and the rows table.
    """
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "headers": EXPECTED_HEADERS,
            "viewer": viewer,
        }
    )


@app.post("/upload", tags=["Viewer Page"])
async def upload_page(file: Optional[UploadFile] = File(None), viewer: ViewerState = Depends(get_viewer)):
    if _has_file(file):
        await handle_upload(viewer, file)
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


@app.post("/search", tags=["Viewer Page"])
async def search_page(search_term: str = Form(""), viewer: ViewerState = Depends(get_viewer)):
    viewer.set_search_term(search_term)
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


@app.post("/clear", tags=["Viewer Page"])
async def clear_page(viewer: ViewerState = Depends(get_viewer)):
    viewer.clear()
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


# API Endpoints
@app.get("/api/rows", response_model=ViewerSnapshot, tags=["Viewer API"])
async def get_rows(viewer: ViewerState = Depends(get_viewer)):
    """
    Current rows after filtering, with the search term, file name and error.
    """
    return viewer.snapshot()


@app.post("/api/upload", response_model=ViewerSnapshot, tags=["Viewer API"])
async def upload_file(file: Optional[UploadFile] = File(None), viewer: ViewerState = Depends(get_viewer)):
    """
    Upload a spreadsheet and replace the loaded rows.

    The first sheet must contain the columns NTE, Municipio, Cod.SEC,
    Nome Escola and Valor. On failure the viewer is reset to the no-file
    state and the response carries the error with its status code.

    Returns:
        ViewerSnapshot: State after the upload
    """
    if not _has_file(file):
        logger.info("Upload request without a file, nothing to do")
        return viewer.snapshot()

    result = await handle_upload(viewer, file)

    # Single exit point
    if result.is_failure():
        return JSONResponse(status_code=result.status_code.value, content=viewer.snapshot().model_dump())
    return viewer.snapshot()


@app.post("/api/search", response_model=ViewerSnapshot, tags=["Viewer API"])
async def search_rows(request: SearchRequest, viewer: ViewerState = Depends(get_viewer)):
    viewer.set_search_term(request.search_term)
    logger.info(f"Search term set to {request.search_term!r}")
    return viewer.snapshot()


@app.post("/api/clear", response_model=ViewerSnapshot, tags=["Viewer API"])
async def clear_rows(viewer: ViewerState = Depends(get_viewer)):
    viewer.clear()
    return viewer.snapshot()


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting XLSX Data Viewer in development mode.")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
