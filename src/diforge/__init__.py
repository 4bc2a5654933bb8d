from diforge.builder import ContainerBuilder
from diforge.container import BaseContainer
from diforge.definitions import MISSING, Code, ServiceDefinition, Statement
from diforge.exceptions import (
    DIForgeAmbiguousTypeError,
    DIForgeArgumentsError,
    DIForgeCircularReferenceError,
    DIForgeClassNotFoundError,
    DIForgeDuplicateServiceError,
    DIForgeError,
    DIForgeInvalidStateError,
    DIForgeInvalidStatementError,
    DIForgeMissingDependencyError,
    DIForgeMissingServiceError,
    DIForgeParameterError,
    DIForgeServiceCreationError,
    DIForgeSharedServiceArgumentsError,
    DIForgeUncallableError,
    DIForgeUnexpectedValueError,
    DIForgeUnresolvableClassError,
)
from diforge.oracle import CallableInfo, ParameterInfo, ReflectionTypeOracle, TypeOracle
from diforge.settings import BuilderSettings

__all__ = [
    "MISSING",
    "BaseContainer",
    "BuilderSettings",
    "CallableInfo",
    "Code",
    "ContainerBuilder",
    "DIForgeAmbiguousTypeError",
    "DIForgeArgumentsError",
    "DIForgeCircularReferenceError",
    "DIForgeClassNotFoundError",
    "DIForgeDuplicateServiceError",
    "DIForgeError",
    "DIForgeInvalidStateError",
    "DIForgeInvalidStatementError",
    "DIForgeMissingDependencyError",
    "DIForgeMissingServiceError",
    "DIForgeParameterError",
    "DIForgeServiceCreationError",
    "DIForgeSharedServiceArgumentsError",
    "DIForgeUncallableError",
    "DIForgeUnexpectedValueError",
    "DIForgeUnresolvableClassError",
    "ParameterInfo",
    "ReflectionTypeOracle",
    "ServiceDefinition",
    "Statement",
    "TypeOracle",
]
