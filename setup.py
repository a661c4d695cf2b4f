from setuptools import setup
about = {}
with open("photoorganiser/__version__.py") as f:
    exec(f.read(), about)


setup(
    name="photoorganiser",
    version=about["__version__"],
    description="Organise photos by capture date into a YYYY/MM/YYYY-MM-DD folder structure.",
    packages=["photoorganiser"],
    install_requires=[
        "piexif",
        "Pillow",
        "colorama",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "photoorganiser=photoorganiser.organisephotos:main",
        ]
    },
    include_package_data=True,
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
