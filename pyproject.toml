[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cfdyndns"
version = "0.1.0"
description = "Keep Cloudflare DNS A records pointed at the current public IP, by polling or through an authenticated HTTP update endpoint."
requires-python = ">=3.10"
keywords = ["cloudflare", "dns", "dyndns", "ddns", "dynamic-dns"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: System :: Networking",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
cfdyndns = "cfdyndns.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["cfdyndns"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
