from pathlib import Path

from setuptools import find_packages, setup

ROOT = Path(__file__).parent

README = (ROOT / "README.md").read_text(encoding="utf-8") if (ROOT / "README.md").exists() else ""

setup(
    name="bundle-gate",
    version="0.1.0",
    description="Content-addressed incremental build gate for a single bundled artifact",
    long_description=README,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "requests",
        "PyYAML",
        "jsonschema",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "bundle-gate=bundle_gate.main:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Environment :: Console",
        "Topic :: Software Development :: Build Tools",
    ],
)
