from setuptools import setup, find_packages


setup(
    name="regionfix",
    version="0.1",
    packages=find_packages(include=["regionfix", "regionfix.*"]),
    description="Audit and repair region container files and the NBT chunk records they hold.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": [
            "nbtlib>=2.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "regionfix=regionfix.cli:main",
        ]
    },
)
