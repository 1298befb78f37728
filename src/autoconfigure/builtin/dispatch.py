"""
Primary dispatch family.

Two dependently gated stages:

- Stage A (``dispatch.dispatcher_servlet``) creates the default dispatcher
  under the reserved name when that name is free. Dispatchers registered
  under other names do not block it: uniqueness is per name.
- Stage B (``dispatch.dispatcher_servlet_registration``) registers the
  default dispatcher. It runs after Stage A and requires the reserved
  registration name to be free and the default dispatcher to be the only
  dispatch-typed component.

The multipart resolver module (``dispatch.multipart_resolver``) exposes a
user-supplied multipart resolver under the reserved name when it was
registered under some other name.
"""

from typing import List

from src.autoconfigure.conditions import (
    ComponentAbsent, ComponentPresent, ExternalCapability, Named, Scope, TypeAvailable,
)
from src.autoconfigure.messages import ConditionMessage, Outcome
from src.autoconfigure.modules import HIGHEST_PRECEDENCE, ModuleDescriptor
from src.autoconfigure.snapshot import SnapshotView
from src.autoconfigure.builtin.registry import builtin_condition


DISPATCHER_TYPE = "org.springframework.web.servlet.DispatcherServlet"
REGISTRATION_TYPE = "org.springframework.boot.web.servlet.ServletRegistrationBean"
SERVLET_REGISTRATION_API = "javax.servlet.ServletRegistration"
SERVLET_WEB_APPLICATION = "servlet-web-application"
MULTIPART_RESOLVER_TYPE = "org.springframework.web.multipart.MultipartResolver"

DEFAULT_DISPATCHER_NAME = "dispatcherServlet"
DEFAULT_REGISTRATION_NAME = "dispatcherServletRegistration"
MULTIPART_RESOLVER_NAME = "multipartResolver"

DISPATCHER_MODULE_ID = "dispatch.dispatcher_servlet"
REGISTRATION_MODULE_ID = "dispatch.dispatcher_servlet_registration"
MULTIPART_MODULE_ID = "dispatch.multipart_resolver"


@builtin_condition("default_dispatcher_servlet", queries={"component_present"}, category="dispatch")
def default_dispatcher_servlet(view: SnapshotView) -> Outcome:
    """Reserved dispatcher name is free (other dispatcher names are fine)."""
    message = ConditionMessage.for_condition("Default DispatcherServlet")
    dispatchers = view.components_of_type(DISPATCHER_TYPE)

    if DEFAULT_DISPATCHER_NAME in dispatchers:
        return Outcome.no_match(
            message.found("dispatcher servlet bean").items(DEFAULT_DISPATCHER_NAME)
        )
    if view.contains_component(DEFAULT_DISPATCHER_NAME):
        return Outcome.no_match(
            message.found("non dispatcher servlet bean").items(DEFAULT_DISPATCHER_NAME)
        )
    if not dispatchers:
        return Outcome.match(message.did_not_find("dispatcher servlet beans").at_all())
    return Outcome.match(
        message.found("dispatcher servlet bean", "dispatcher servlet beans")
        .item_list(dispatchers, quote=True)
        .append(f"and none is named {DEFAULT_DISPATCHER_NAME}")
    )


@builtin_condition("dispatcher_servlet_registration", queries={"component_present"}, category="dispatch")
def dispatcher_servlet_registration(view: SnapshotView) -> Outcome:
    """Registration name is free and the default dispatcher is the sole dispatcher."""
    message = ConditionMessage.for_condition("DispatcherServlet Registration")
    dispatchers = view.components_of_type(DISPATCHER_TYPE)

    if view.contains_component(DEFAULT_DISPATCHER_NAME) and DEFAULT_DISPATCHER_NAME not in dispatchers:
        return Outcome.no_match(
            message.found("non dispatcher servlet").items(DEFAULT_DISPATCHER_NAME)
        )
    if dispatchers and tuple(dispatchers) != (DEFAULT_DISPATCHER_NAME,):
        return Outcome.no_match(
            message.found("dispatcher servlet bean", "dispatcher servlet beans")
            .item_list(dispatchers, quote=True)
            .append(f"and {DEFAULT_DISPATCHER_NAME} is not the only one")
        )

    registrations = view.components_of_type(REGISTRATION_TYPE)
    registration_name_taken = view.contains_component(DEFAULT_REGISTRATION_NAME)
    if not registrations:
        if registration_name_taken:
            return Outcome.no_match(
                message.found("non servlet registration bean").items(DEFAULT_REGISTRATION_NAME)
            )
        return Outcome.match(message.did_not_find("servlet registration bean").at_all())
    if DEFAULT_REGISTRATION_NAME in registrations:
        return Outcome.no_match(
            message.found("servlet registration bean").items(DEFAULT_REGISTRATION_NAME)
        )
    if registration_name_taken:
        return Outcome.no_match(
            message.found("non servlet registration bean").items(DEFAULT_REGISTRATION_NAME)
        )
    return Outcome.match(
        message.found("servlet registration beans")
        .item_list(registrations, quote=True)
        .append(f"and none is named {DEFAULT_REGISTRATION_NAME}")
    )


def modules() -> List[ModuleDescriptor]:
    return [
        ModuleDescriptor(
            id=DISPATCHER_MODULE_ID,
            conditions=(
                ExternalCapability(SERVLET_WEB_APPLICATION),
                TypeAvailable(DISPATCHER_TYPE),
                Named("default_dispatcher_servlet"),
                TypeAvailable(SERVLET_REGISTRATION_API),
            ),
            precedence=HIGHEST_PRECEDENCE,
            provided_names={DEFAULT_DISPATCHER_NAME},
            provided_type=DISPATCHER_TYPE,
            description="Default dispatcher mapped to the root path",
        ),
        ModuleDescriptor(
            id=REGISTRATION_MODULE_ID,
            conditions=(
                ExternalCapability(SERVLET_WEB_APPLICATION),
                TypeAvailable(DISPATCHER_TYPE),
                Named("dispatcher_servlet_registration"),
                TypeAvailable(SERVLET_REGISTRATION_API),
                ComponentPresent(DEFAULT_DISPATCHER_NAME, Scope.BY_NAME),
            ),
            precedence=HIGHEST_PRECEDENCE,
            provided_names={DEFAULT_REGISTRATION_NAME},
            provided_type=REGISTRATION_TYPE,
            runs_after={DISPATCHER_MODULE_ID},
            description="Registers the default dispatcher with the servlet container",
        ),
        ModuleDescriptor(
            id=MULTIPART_MODULE_ID,
            conditions=(
                ExternalCapability(SERVLET_WEB_APPLICATION),
                TypeAvailable(DISPATCHER_TYPE),
                ComponentPresent(MULTIPART_RESOLVER_TYPE, Scope.BY_TYPE),
                ComponentAbsent(MULTIPART_RESOLVER_NAME, Scope.BY_NAME),
            ),
            precedence=HIGHEST_PRECEDENCE,
            provided_names={MULTIPART_RESOLVER_NAME},
            provided_type=MULTIPART_RESOLVER_TYPE,
            runs_after={DISPATCHER_MODULE_ID},
            description="Aliases a misnamed multipart resolver under the reserved name",
        ),
    ]
