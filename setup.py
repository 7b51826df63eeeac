from setuptools import setup, find_packages

setup(
    name="filestore",
    version="0.1.0",
    packages=find_packages(include=["filestore", "filestore.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110.0",
        "httpx>=0.26.0",
        "pillow>=10.0.0",
        "prometheus-client>=0.19.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "pyyaml>=6.0",
        "qiniu>=7.13.0",
        "uvicorn>=0.27.0",
        "webdav4>=0.9.8",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "filestore=filestore.cli:main",
        ],
    },
)
