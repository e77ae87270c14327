from setuptools import setup, find_packages
setup(
    name="msa_property_sync",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.28",
        "pydantic>=2",
        "python-dateutil>=2.8",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'msa_property_sync=msa_property_sync.__main__:_safe_main'
        ]
    }
)
