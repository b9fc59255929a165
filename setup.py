from pathlib import Path
from setuptools import setup, find_packages

ROOT = Path(__file__).parent
README = (ROOT / "README.md").read_text(encoding="utf-8")

setup(
    name="swapin",
    version="0.1.0",
    description="Peer-to-peer item swap marketplace backend on FastAPI and Firestore",
    long_description=README,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0,<3.0.0",
        "pydantic-settings>=2.0",
        "google-cloud-firestore>=2.11.0",  # FieldFilter and count() aggregation
        "firebase-admin>=6.0",
        "fastapi>=0.100",
        "uvicorn>=0.22",
    ],
    extras_require={
        "test": ["pytest", "pytest-asyncio", "httpx"],
        "dev": ["black", "ruff", "pytest", "pytest-asyncio", "httpx"],
    },
    entry_points={
        "console_scripts": ["swapin=swapin.__main__:main"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Framework :: AsyncIO",
        "Framework :: FastAPI",
    ],
    keywords=[
        "firestore",
        "pydantic",
        "fastapi",
        "marketplace",
    ],
)
