"""Setup script for icsgrid, the ICS calendar proxy and grid backend."""

from pathlib import Path

from setuptools import find_packages, setup

HERE = Path(__file__).parent


def _read_requirements(path: Path) -> tuple[list[str], list[str]]:
    """Split requirements.txt into runtime and pytest tooling."""
    runtime: list[str] = []
    testing: list[str] = []
    if not path.exists():
        return runtime, testing
    for raw in path.read_text(encoding="utf-8").splitlines():
        spec = raw.split("#", 1)[0].strip()
        if spec:
            (testing if spec.startswith("pytest") else runtime).append(spec)
    return runtime, testing


readme = HERE / "README.md"
long_description = readme.read_text(encoding="utf-8") if readme.exists() else ""
requirements, test_requirements = _read_requirements(HERE / "requirements.txt")

setup(
    name="icsgrid",
    version="0.1.0",
    description="ICS calendar proxy with month/week/day/agenda grids and printable output",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="icsgrid developers",
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Environment :: Web Environment",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Framework :: AsyncIO",
        "Framework :: aiohttp",
    ],
    keywords="calendar ics icalendar proxy grid agenda print aiohttp async",
    entry_points={
        "console_scripts": [
            "icsgrid=icsgrid.__main__:main",
        ],
    },
    zip_safe=False,
)
