from setuptools import setup, find_packages


setup(
    name="aef",
    version="0.1",
    packages=find_packages(include=["aef", "aef.*"]),
    description="A streaming, password-protected archive format: scrypt keys, AES-256-GCM chunks, optional brotli.",
    author="vercingetorx",
    install_requires=[
        "pycryptodomex>=3.23.0",
        "brotli>=1.2.0",
    ],
    entry_points={
        "console_scripts": [
            "aef=aef.cli:main",
        ]
    },
)
