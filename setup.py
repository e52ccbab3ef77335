"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/qtrace/qtrace"
KEYWORDS = "emulator build configure fuzzing afl qemu trace staging"
HERE = os.path.dirname(os.path.abspath(__file__))


if __name__ == "__main__":
    setup(
        name="qtrace",
        version="0.1.0",
        description="Builds the user-mode emulator and stages it as the fuzzing trace binary",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.8",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=["psutil"],
        extras_require={"test": ["pytest"]},
        entry_points={"console_scripts": ["qtrace=qtrace.cli:main"]},
    )
