from setuptools import setup, find_namespace_packages

setup(
    name="imgdeploy",
    version="1.0.0",
    packages=find_namespace_packages(where="src", include=["imgdeploy", "imgdeploy.*"]),
    package_dir={"": "src"},
    install_requires=[
        "pydantic>=2.0",
        "click>=8.0",
        "psutil>=5.9",
        "tenacity>=8.0",
        "python-dotenv>=1.0",
        "jinja2>=3.0",
        "docker>=7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
        "dev": [
            "black>=23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "imgdeploy=imgdeploy.CLI.main:main",
        ],
    },
)
