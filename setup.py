from setuptools import setup, find_packages


setup(
    name="hashvault",
    version="0.1",
    packages=find_packages(include=["hashvault", "hashvault.*"]),
    description="A content-addressed, deduplicating, encrypted store for nested values.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[
        "pycryptodomex>=3.23.0",
        "argon2-cffi>=23.1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "hashvault=hashvault.cli:main",
        ]
    },
)
