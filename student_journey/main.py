"""FastAPI application for the Student Journey Analyzer."""

import os
import logging
import traceback
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import FastAPI, File, UploadFile, HTTPException, Request, Query
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError
from dotenv import load_dotenv

from student_journey import analytics
from student_journey.aggregation import advisor_impact, course_category_stats, program_performance
from student_journey.email_templates import generate_email_draft
from student_journey.exports import EXPORTERS
from student_journey.filters import filter_options
from student_journey.models import (
    EmailDraftRequest,
    EmailDraftResponse,
    FilterOptions,
    FilterSpec,
    ProcessedResult,
    StudentRecord,
    UploadResponse,
)
from student_journey.parsers import parse_csv
from student_journey.pipeline import process_student_data
from student_journey.risk import calculate_risk_score, get_risk_level, risk_factor_breakdown

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(title="Student Journey Analyzer", version="1.0.0")

# CORS configuration
allow_origins = os.getenv('ALLOW_ORIGINS', '*').split(',')
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler_json(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions and return JSON."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler_json(request: Request, exc: RequestValidationError):
    """Handle validation errors and return JSON."""
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and return JSON."""
    logger.exception("Unhandled error on %s", request.url.path)
    error_detail = str(exc)
    if os.getenv('DEBUG', 'False').lower() == 'true':
        error_detail = f"{str(exc)}\n\n{traceback.format_exc()}"

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Internal server error: {error_detail}",
            "type": type(exc).__name__
        }
    )


# Configuration
MAX_UPLOAD_SIZE_MB = int(os.getenv('MAX_UPLOAD_SIZE_MB', '10'))
MAX_UPLOAD_SIZE = MAX_UPLOAD_SIZE_MB * 1024 * 1024
CSV_DELIMITER = os.getenv('CSV_DELIMITER', ',')

# In-memory dataset for the session, replaced wholesale on each upload
dataset_cache: Dict[str, List[StudentRecord]] = {}
DATASET_KEY = 'records'


def jsonable_errors(errors: List[Dict]) -> List[Dict]:
    """Keep only the JSON-safe parts of pydantic error dicts."""
    return [
        {'loc': list(err.get('loc', [])), 'msg': err.get('msg', ''), 'type': err.get('type', '')}
        for err in errors
    ]


def get_loaded_records() -> List[StudentRecord]:
    """Records from the last upload, or 404 if nothing is loaded."""
    records = dataset_cache.get(DATASET_KEY)
    if records is None:
        raise HTTPException(status_code=404, detail="No data loaded. Upload a CSV file first.")
    return records


def build_analytics(result: ProcessedResult) -> Dict:
    """Dashboard breakdowns for a processed result."""
    students = result.students
    return {
        'programs': program_performance(students),
        'advisors': advisor_impact(students),
        'course_categories': course_category_stats(students),
        'gpa_distribution': analytics.gpa_distribution(students),
        'attendance_distribution': analytics.attendance_distribution(students),
        'meeting_impact': analytics.meeting_impact(students),
        'funnel': analytics.journey_funnel(students),
        'risk_factors': analytics.risk_factor_counts(students),
        'risk_levels': analytics.risk_level_counts(students, result.risk_scores),
        'engagement': analytics.engagement_flags(students),
        'top_risk_students': analytics.top_risk_students(students, result.risk_scores),
    }


@app.get("/health")
async def health_check():
    """Health check endpoint to test server connectivity."""
    return JSONResponse(content={"status": "ok", "message": "Server is running"})


@app.post("/upload", response_model=UploadResponse)
async def upload_file(file: UploadFile = File(...)):
    """Upload a CSV of student journey records, replacing any loaded data."""
    file_bytes = await file.read()
    if len(file_bytes) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {MAX_UPLOAD_SIZE_MB}MB"
        )

    if not (file.filename or '').lower().endswith('.csv'):
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Please upload a CSV file"
        )

    try:
        text = file_bytes.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File is not valid UTF-8 text")

    records = parse_csv(text, delimiter=CSV_DELIMITER)
    if not records:
        raise HTTPException(
            status_code=400,
            detail="No student records found. The CSV file appears to be empty or incorrectly formatted."
        )

    dataset_cache[DATASET_KEY] = records
    student_count = len({r.student_id for r in records})
    logger.info(
        "Loaded %d records for %d students from %s at %s",
        len(records), student_count, file.filename, datetime.now().isoformat()
    )

    return UploadResponse(
        success=True,
        message=f"Loaded {len(records)} student records",
        record_count=len(records),
        student_count=student_count,
        options=filter_options(records)
    )


@app.get("/filters/options", response_model=FilterOptions)
async def get_filter_options():
    """Distinct programs and advisors in the loaded data."""
    return filter_options(get_loaded_records())


@app.post("/process")
async def process(filters: FilterSpec):
    """Filter, score and summarize the loaded data."""
    records = get_loaded_records()
    result = process_student_data(records, filters)
    content = result.model_dump(mode='json', by_alias=True)
    content['analytics'] = build_analytics(result)
    return JSONResponse(content=content)


@app.get("/download/{kind}.csv")
async def download_csv(
    kind: str,
    programs: List[str] = Query(default=[]),
    advisors: List[str] = Query(default=[]),
    start: Optional[str] = None,
    end: Optional[str] = None,
    risk_level: str = 'all'
):
    """Download students, risk analysis, summary or program analysis as CSV."""
    exporter = EXPORTERS.get(kind)
    if exporter is None:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown export '{kind}'. Choose one of: {', '.join(EXPORTERS)}"
        )
    records = get_loaded_records()

    try:
        filters = FilterSpec(
            programs=programs,
            advisors=advisors,
            date_range={'start': start or '', 'end': end or ''},
            risk_level=risk_level
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=jsonable_errors(e.errors()))

    result = process_student_data(records, filters)
    csv_text = exporter(result, delimiter=CSV_DELIMITER)
    filename = f"student_{kind}_{datetime.now().strftime('%Y-%m-%d')}.csv"

    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@app.post("/email-draft", response_model=EmailDraftResponse)
async def generate_email_draft_endpoint(request: EmailDraftRequest):
    """Generate an outreach email draft for a loaded student."""
    records = get_loaded_records()

    # Last row wins, matching the pipeline's risk map.
    student = None
    for record in records:
        if record.student_id == request.student_id:
            student = record
    if student is None:
        raise HTTPException(status_code=404, detail=f"Student '{request.student_id}' not found")

    risk_score = calculate_risk_score(student)
    email = generate_email_draft(
        student_id=student.student_id,
        program=student.program,
        risk_score=risk_score,
        gpa=student.gpa_at_time,
        attendance_rate=student.attendance_rate,
        factors=risk_factor_breakdown(student)
    )

    return EmailDraftResponse(
        risk_score=risk_score,
        risk_level=get_risk_level(risk_score),
        **email
    )


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
