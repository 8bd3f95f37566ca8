from setuptools import setup, find_packages
from pathlib import Path

setup(
    name="timeline_annotation",
    version=Path("./timeline_annotation/VERSION").read_text().strip(),
    packages=find_packages(include=["timeline_annotation", "timeline_annotation.*"]),
    package_data={"timeline_annotation": ["VERSION"]},
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "easydict",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "timeline_annotation=timeline_annotation.cli:main",
        ],
    },
)
