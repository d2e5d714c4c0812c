from setuptools import setup, find_packages

setup(
    name="glue-android",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml>=5.4",
        "jsonschema>=4.0.0",
        "Appium-Python-Client>=3.0",
        "selenium>=4.10",
        "websockets>=13.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    package_data={
        "glue_core": ["schemas/*.json"],
        "glue_android": ["schemas/*.json", "data/*.yaml"],
    },
    entry_points={
        "console_scripts": [
            "glue-android=glue_android.cli:main",
        ],
    },
)
