"""
Setup script for the Authorization Model Engine.
"""

from setuptools import find_packages, setup

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="authz-model-engine",
    version="1.0.0",
    author="Authorization Model Engine Team",
    author_email="team@example.com",
    description="Provision and reconcile SAS Viya authorization models from CSV definitions",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["authz_engine", "authz_engine.*"]),
    package_data={"authz_engine.engine": ["hardening.yaml"]},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Information Technology",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "Topic :: Security",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-mock>=3.10.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "authzctl=authz_engine.cli.authzctl:main",
        ],
    },
)
