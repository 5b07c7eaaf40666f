# setup.py
from setuptools import setup, find_packages

setup(
    name="segscan",
    version="0.1.0",
    description="Parallel single-byte occurrence counter with forked workers",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "setproctitle",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["segscan = segscan.cli:main"],
    },
)
