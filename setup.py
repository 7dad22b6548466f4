from setuptools import find_packages, setup

exec(open("yieldloop/_version.py", encoding="utf-8").read())

with open("LONG_DESCRIPTION.rst", encoding="utf8") as f:
    LONG_DESC = f.read()

setup(
    name="yieldloop",
    version=__version__,
    description="Cooperative multitasking with plain generators and non-blocking sockets",
    long_description=LONG_DESC,
    long_description_content_type="text/x-rst",
    license="MIT OR Apache-2.0",
    packages=find_packages(),
    install_requires=[
        # attrs 20.1.0 adds @frozen and the eq option we rely on
        "attrs >= 20.1.0",
        "outcome",
        # sniffio 1.3.0 adds thread_local
        "sniffio >= 1.3.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.8",
    keywords=["coroutines", "generators", "scheduler", "io", "networking"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS :: MacOS X",
        "Operating System :: POSIX :: BSD",
        "Programming Language :: Python :: Implementation :: CPython",
        "Programming Language :: Python :: Implementation :: PyPy",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: System :: Networking",
    ],
)
