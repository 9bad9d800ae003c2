# app/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.routers import auth, chat, branch, message
from app.core.config import configure_logging
from app.core.database import init_db
from app.core.errors import ChatBranchingError

configure_logging()

app = FastAPI()

# Add CORS middleware (adjust allow_origins as needed for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Update for production!
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Domain errors answer with the same {"detail": ...} shape as HTTPException
@app.exception_handler(ChatBranchingError)
async def branching_error_handler(request: Request, exc: ChatBranchingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

# Include routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(chat.router, prefix="/chat", tags=["Chat"])
app.include_router(branch.router, prefix="/branch", tags=["Branch"])
app.include_router(message.router, prefix="/message", tags=["Message"])

# Initialize the database (create tables if needed)
init_db()

@app.get("/")
def read_root():
    return {"message": "Welcome to the chat branching backend!"}
