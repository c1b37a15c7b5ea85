"""Setup configuration for techdebt"""

from setuptools import setup, find_packages

setup(
    name="techdebt-analyzer",
    version="0.1.0",
    description=(
        "Technical debt scoring per product area from support tickets and "
        "usage data, with correlation and trend analytics."
    ),
    author="Technical Debt Analyzer Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "techdebt-analyzer=techdebt.main:main",
        ],
    },
)
