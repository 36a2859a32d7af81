"""Setup configuration for Modflow Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="modflow",
    version="0.0.1",
    description="A Discord bot that turns natural-language moderation requests into executable plans",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord",
        "openai",
        "PyYAML",
        "python-dotenv",
        "jsonschema",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "modflow=modflow.main:main",
        ],
    },
)
