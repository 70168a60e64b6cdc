# cbt/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from cbt.api.v1.endpoints import health, metrics, students
from cbt.core.config import settings
from cbt.core.exceptions import ExamServiceError
from cbt.core.logging_config import setup_logging
from middleware.request_logging import RequestLoggingMiddleware

setup_logging()
logger = logging.getLogger('cbt')

app = FastAPI(
    title=settings.PROJECT_NAME,
    description='''
    ## Computer-based testing backend

    **Student exam flow:**
    - **Login**: exam code + password, lists active exams for the class
    - **Start / resume**: timed session created on first access, resumable after disconnect
    - **Autosave**: replaces saved answers while time remains
    - **Submit**: graded once, with a short grace window for network latency
    ''',
    version='1.0.0',
    openapi_url='/openapi.json',
    docs_url='/docs',
    redoc_url='/redoc'
)

logger.info('CBT API starting up')

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(health.router, prefix='/api/v1', tags=['Health Check'])
app.include_router(students.router, prefix='/api/v1/students', tags=['Student Exams'])
app.include_router(metrics.router, tags=['Metrics'])


@app.exception_handler(ExamServiceError)
async def exam_service_error_handler(request: Request, exc: ExamServiceError):
    # errors raised outside endpoint bodies, e.g. while resolving dependencies
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.to_detail()})


@app.get('/')
async def root():
    return {
        'message': 'CBT exam backend',
        'status': 'ok',
        'version': '1.0.0',
        'docs': '/docs',
        'student_endpoints': {
            'login': '/api/v1/students/login',
            'questions': '/api/v1/students/exam/{subject}/questions',
            'save_progress': '/api/v1/students/exam/save-progress',
            'submit': '/api/v1/students/exam/submit'
        }
    }


if __name__ == '__main__':
    import uvicorn
    uvicorn.run(app, host='0.0.0.0', port=8000)
