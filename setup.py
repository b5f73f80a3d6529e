from setuptools import find_packages, setup

setup(
    name="httpcall",
    version="0.4.0",
    description="Single-request HTTP helpers with an in-process mock server",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "httpx[socks] >= 0.27.0",
        "jsonpath-ng >= 1.6.0",
        "pytest-httpserver >= 1.0.8",
        "typing_extensions >= 4.10",
        "werkzeug >= 2.3",
    ],
    extras_require={
        "test": [
            "pytest >= 7.0",
        ],
    },
)
