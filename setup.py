#!/usr/bin/env python

from setuptools import setup

setup(
    name="conceptrepo",
    version="0.3.0",
    description="API to store concepts in a GitHub repository and keep them indexed",
    packages=["conceptrepo", "conceptrepo.api", "conceptrepo.github", "conceptrepo.index"],
    include_package_data=True,
    zip_safe=False,
    keywords=["API", "github", "index"],
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Topic :: Software Development :: Version Control :: Git",
    ],
    python_requires=">=3.11",
    install_requires=[
        "fastapi[all]",
        "python-dotenv",
        "httpx",
        "authlib",
        "pydantic>=2",
        "pydantic-settings",
        "typing_extensions",
        "uvicorn",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-httpx",
            "anyio",
            "mypy",
            "flake8",
        ]
    },
    entry_points={
        "console_scripts": [
            "conceptrepo = conceptrepo.__main__:main"
        ]
    },
)
