#!/usr/bin/env python3

from setuptools import find_namespace_packages, setup


def get_version():
    with open("debian/changelog", "r", encoding="utf-8") as f:
        return f.readline().split()[1][1:-1]


setup(
    name="evok-mqtt-bridge",
    version=get_version(),
    description="Bidirectional bridge between EVOK gateway I/O and an MQTT broker",
    license="MIT",
    url="https://github.com/automatedhome/evok-mqtt-bridge",
    packages=find_namespace_packages(include=["automatedhome.*"]),
    python_requires=">=3.9",
    install_requires=[
        "paho-mqtt>=2.0",
        "httpx",
        "websockets>=13.0",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "evok-mqtt-bridge=automatedhome.evok_bridge.client.main:main",
        ],
    },
)
