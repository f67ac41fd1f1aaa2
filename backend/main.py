import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.core.errors import AccountError, CredentialError, RegistrationValidationError
from backend.database import Base, engine, ensure_user_schema
from backend.models import id_counter, user  # noqa: F401
from backend.routes import auth_routes

app = FastAPI(title='AlumniConnect API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_user_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    if isinstance(exc, CredentialError):
        logger.error('Credential failure on %s.', request.url.path if request else 'unknown path')

    content = {'code': exc.code, 'message': exc.message}
    if isinstance(exc, RegistrationValidationError):
        content['errors'] = exc.errors
    elif exc.status_code < 500 and exc.details:
        content['details'] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.get('/')
def root():
    return {'status': 'AlumniConnect API Running'}


app.include_router(auth_routes.router, prefix='/api/auth')
