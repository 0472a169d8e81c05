from setuptools import find_packages, setup

setup(
    name="hostelkeep",
    version="0.1.0",
    description="Duplicate issue detection and merge consistency for hostel maintenance reports",
    packages=find_packages(include=["hostelkeep", "hostelkeep.*"]),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2",
        "PyYAML>=6",
    ],
    extras_require={
        "api": ["fastapi>=0.110", "uvicorn>=0.27"],
        "test": ["pytest>=8", "fastapi>=0.110", "httpx>=0.27"],
    },
    entry_points={"console_scripts": ["hostelkeep=hostelkeep.cli:main"]},
)
