"""Setup configuration for the Group Chat Client."""

from setuptools import setup, find_packages

setup(
    name="groupchat-client",
    version="0.1.0",
    description="A client for a plaintext group chat protocol over TCP",
    author="Group Chat Client Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "textual>=0.47.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "groupchat=groupchat.main:main",
            "groupchat-console=groupchat.console:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
