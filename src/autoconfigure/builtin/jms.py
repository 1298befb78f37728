"""
Messaging listener family.

Only the listener-side modules live here: the container factory
configurer, the default listener container factory, listener annotation
processing and a JNDI destination resolver.
"""

from typing import List

from src.autoconfigure.conditions import (
    ComponentAbsent, ExternalCapability, Scope, SingleCandidate, TypeAvailable,
)
from src.autoconfigure.modules import ModuleDescriptor, Phase


ENABLE_JMS_TYPE = "org.springframework.jms.annotation.EnableJms"
CONNECTION_FACTORY_TYPE = "javax.jms.ConnectionFactory"
CONFIGURER_TYPE = "org.springframework.boot.autoconfigure.jms.DefaultJmsListenerContainerFactoryConfigurer"
CONTAINER_FACTORY_TYPE = "org.springframework.jms.config.DefaultJmsListenerContainerFactory"
ANNOTATION_PROCESSOR_TYPE = "org.springframework.jms.annotation.JmsListenerAnnotationBeanPostProcessor"
DESTINATION_RESOLVER_TYPE = "org.springframework.jms.support.destination.DestinationResolver"

CONFIGURER_NAME = "jmsListenerContainerFactoryConfigurer"
CONTAINER_FACTORY_NAME = "jmsListenerContainerFactory"
ANNOTATION_PROCESSOR_NAME = "org.springframework.jms.config.internalJmsListenerAnnotationProcessor"
DESTINATION_RESOLVER_NAME = "destinationResolver"

JNDI_CAPABILITY = "jndi"

CONFIGURER_MODULE_ID = "jms.listener_configurer"
CONTAINER_FACTORY_MODULE_ID = "jms.listener_container_factory"
ENABLE_LISTENERS_MODULE_ID = "jms.enable_listeners"
JNDI_RESOLVER_MODULE_ID = "jms.jndi_destination_resolver"


def modules() -> List[ModuleDescriptor]:
    return [
        ModuleDescriptor(
            id=CONFIGURER_MODULE_ID,
            conditions=(
                TypeAvailable(ENABLE_JMS_TYPE),
                ComponentAbsent(CONFIGURER_TYPE, Scope.BY_TYPE),
            ),
            provided_names={CONFIGURER_NAME},
            provided_type=CONFIGURER_TYPE,
            description="Configurer for listener container factories",
        ),
        ModuleDescriptor(
            id=CONTAINER_FACTORY_MODULE_ID,
            conditions=(
                TypeAvailable(ENABLE_JMS_TYPE),
                SingleCandidate(CONNECTION_FACTORY_TYPE),
                ComponentAbsent(CONTAINER_FACTORY_NAME, Scope.BY_NAME),
            ),
            phase=Phase.INSTANTIATION,
            provided_names={CONTAINER_FACTORY_NAME},
            provided_type=CONTAINER_FACTORY_TYPE,
            runs_after={CONFIGURER_MODULE_ID},
            description="Default listener container factory bound to the single connection factory",
        ),
        ModuleDescriptor(
            id=ENABLE_LISTENERS_MODULE_ID,
            conditions=(
                TypeAvailable(ENABLE_JMS_TYPE),
                ComponentAbsent(ANNOTATION_PROCESSOR_NAME, Scope.BY_NAME),
            ),
            provided_names={ANNOTATION_PROCESSOR_NAME},
            provided_type=ANNOTATION_PROCESSOR_TYPE,
            description="Listener annotation processing",
        ),
        ModuleDescriptor(
            id=JNDI_RESOLVER_MODULE_ID,
            conditions=(
                TypeAvailable(ENABLE_JMS_TYPE),
                ExternalCapability(JNDI_CAPABILITY),
                ComponentAbsent(DESTINATION_RESOLVER_TYPE, Scope.BY_TYPE),
            ),
            provided_names={DESTINATION_RESOLVER_NAME},
            provided_type=DESTINATION_RESOLVER_TYPE,
            description="Resolves destinations through JNDI",
        ),
    ]
