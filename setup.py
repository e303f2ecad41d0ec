from setuptools import setup, find_packages


setup(
    name="paket",
    version="0.1",
    packages=find_packages(include=["paket", "paket.*"]),
    description="Random-access encrypted containers: many files in one blob, each segment encrypted, located by an external table.",
    author="vercingetorx",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "paket=paket.cli:main",
        ]
    },
)
