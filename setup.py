from setuptools import setup, find_packages
setup(
    name="owner_lookup",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "fastapi<0.137",
        "pydantic>=2",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ]
    },
    entry_points={
        'console_scripts': [
            'owner_lookup=owner_lookup.__main__:_safe_main'
        ]
    }
)
