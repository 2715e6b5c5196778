"""Setup script for the docdesk package."""

from setuptools import setup, find_packages

setup(
    name="docdesk",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "pydantic-settings",
        "python-multipart",
        "python-dotenv",
        "structlog",
        "prometheus-client",
        "pymupdf",
        "pdfplumber",
        "python-docx",
        "pandas",
        "openpyxl",
        "xlrd",
        "langchain-core",
        "langchain-google-genai",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
    description="Docdesk - PDF toolkit and document chat service",
    author="Docdesk Team",
)
