[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tsplbridge"
version = "3.0.0"
description = "Render pdfme label schemas to TSPL2 commands for thermal label printers"
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = ["tspl", "tspl2", "thermal", "label", "printer", "pdfme", "barcode", "qrcode"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Printing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tsplbridge"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
