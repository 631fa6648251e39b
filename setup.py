from setuptools import setup, find_packages

setup(
    name="hooked-on-flies",
    version="0.1.0",
    description="Hooked on Flies back-office service: fly catalog curation and AI classification",
    author="Hooked on Flies Team",
    packages=find_packages(include=["src", "src.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "pydantic>=2.5",
        "sqlalchemy>=2.0",
        "psycopg2-binary>=2.9",
        "python-dotenv>=1.0",
        "requests>=2.31",
        "urllib3>=2.0",
        "pyyaml>=6.0",
        "boto3>=1.34",
        "openai>=1.12",
        "python-multipart>=0.0.9",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "httpx>=0.27",
        ],
    },
)
