# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

from setuptools import find_packages, setup

setup(
    name="bioprompt",
    version="0.1.0",
    description="Biometric capability detection and focus-aware authentication prompts for Kivy apps",
    author="Zilant Prime Core contributors",
    license="MIT",
    packages=find_packages(include=["bioprompt", "bioprompt.*"]),
    python_requires=">=3.8",
    install_requires=[
        "cryptography>=38.0.4",
    ],
    extras_require={
        # on-device adapters (bioprompt.android, bioprompt.host)
        "android": [
            "kivy>=2.2",
            "pyjnius>=1.5",
        ],
        # dev / тестирование
        "test": [
            "pytest>=8.0.0",
            "pytest-timeout>=2.3.0",
        ],
    },
)
