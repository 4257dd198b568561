from setuptools import setup
import pathlib

here = pathlib.Path(__file__).parent.resolve()

long_description = (here / "README.md").read_text(encoding="utf-8")

setup(
    name="zoneplay",
    version="1.0.0",
    description="Play favorites across groups of Sonos speakers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=[
        "zoneplay",
        "zoneplay.cli",
    ],
    python_requires=">=3.10, <4",
    install_requires=[
        "aiohttp",
        "click",
        "lxml",
        "pydantic",
        "rich",
        "untangle",
        "xmltodict",
    ],
    extras_require={
        "dev": [
            "black[d]",
        ],
        "test": [
            "coverage",
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        'console_scripts': [
            'zoneplay=zoneplay.cli:cli',
        ]
    },
)
