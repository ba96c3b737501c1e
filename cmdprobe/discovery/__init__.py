"""Command discovery: registry port, classification and signature research."""

from cmdprobe.discovery.registry import CallableRegistry, CommandRegistry, RegisteredCommand
from cmdprobe.discovery.researcher import ParameterResearcher
from cmdprobe.discovery.scanner import RegistryScanner, build_operation

__all__ = [
    "CallableRegistry",
    "CommandRegistry",
    "ParameterResearcher",
    "RegisteredCommand",
    "RegistryScanner",
    "build_operation",
]
