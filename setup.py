from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="ad-computer-report",
    version="0.1.0",
    author="LSA Technology Services",
    author_email="lsats@umich.edu",
    description="Count Active Directory computers under named OUs, grouped by location",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
    ],
    python_requires=">=3.8",
    install_requires=[
        "ldap3>=2.9",
        "keyring>=23.0.0",
        "pandas>=1.3.0",
        "python-dotenv>=0.19.0",
    ],
    extras_require={
        "kerberos": [
            # Needed by ldap3 for SASL/GSSAPI binds with the ambient identity
            "gssapi>=1.8.0",
        ],
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ad-computer-count=scripts.ad.count_computers_by_location:main",
        ],
    },
)
