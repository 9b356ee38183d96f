"""
Kubernetes Resource Store

Resource Store adapter backed by a live cluster through the official
``kubernetes`` client. Custom tenancy kinds go through ``CustomObjectsApi``,
namespaces through ``CoreV1Api`` and roles/bindings through
``RbacAuthorizationV1Api``. API errors are translated into the
``TenancyError`` taxonomy.
"""

import json
import logging
import os
from typing import Any, Dict, Iterator, List, Optional

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException

from ..core.config import ManagerConfig
from ..core.constants import Kind
from ..core.exceptions import (
    AlreadyExistsError, BadRequestError, ConfigurationError, ConflictError, ForbiddenError,
    InternalError, NotFoundError, TenancyError
)
from ..core.models import KubeObject, object_from_dict
from ..core.utils import disable_ssl_warnings
from .base import EventType, ResourceStore, WatchEvent, Watcher, error_status

logger = logging.getLogger(__name__)


def translate_api_exception(error: ApiException, kind: str = "", name: str = "") -> TenancyError:
    """
    Convert a kubernetes ``ApiException`` into a ``TenancyError``

    Args:
        error: Exception raised by the kubernetes client
        kind: Kind of the object the call addressed
        name: Name of the object the call addressed

    Returns:
        TenancyError: Matching error of the tenancy taxonomy
    """
    message = error.reason or ""
    reason = ""
    if error.body:
        try:
            body = json.loads(error.body)
            message = body.get('message', message)
            reason = body.get('reason', '')
        except (ValueError, TypeError, AttributeError):
            pass

    status = error.status or 0
    if status == 404:
        return NotFoundError(kind, name, message or None)
    if status == 409:
        if reason == "AlreadyExists":
            return AlreadyExistsError(message)
        return ConflictError(message)
    if status == 403:
        return ForbiddenError(kind, name, message)
    if status in (400, 422):
        return BadRequestError(message)
    return InternalError(f"API error ({status}): {message}")


def create_api_client(settings: ManagerConfig) -> client.ApiClient:
    """
    Build an API client from kubeconfig or the in-cluster service account

    Args:
        settings: Manager settings (kubeconfig, context, in_cluster, skip_tls)

    Returns:
        client.ApiClient: Configured API client

    Raises:
        ConfigurationError: If no usable cluster configuration is found
    """
    try:
        if settings.in_cluster:
            config.load_incluster_config()
            logger.info("Successfully loaded in-cluster config")
        else:
            kubeconfig = os.path.expanduser(settings.kubeconfig) if settings.kubeconfig else None
            config.load_kube_config(config_file=kubeconfig, context=settings.context or None)
            logger.info("Successfully loaded kubeconfig")
    except (config.ConfigException, OSError) as e:
        raise ConfigurationError(f"Failed to load Kubernetes configuration: {e}")

    configuration = client.Configuration.get_default_copy()
    if settings.skip_tls:
        configuration.verify_ssl = False
        configuration.ssl_ca_cert = None
        disable_ssl_warnings()
    return client.ApiClient(configuration)


class KubernetesWatcher(Watcher):
    """Adapts ``kubernetes.watch.Watch`` to the store's watch events"""

    def __init__(self, kind: Kind, func, *args, **kwargs):
        self.kind = kind
        self._func = func
        self._args = args
        self._kwargs = kwargs
        self._watch = watch.Watch()

    def __iter__(self) -> Iterator[WatchEvent]:
        try:
            for raw in self._watch.stream(self._func, *self._args, **self._kwargs):
                event_type = EventType(raw['type'])
                if event_type == EventType.ERROR:
                    yield WatchEvent(type=EventType.ERROR, status=raw.get('raw_object'))
                    return
                yield WatchEvent(type=event_type, object=object_from_dict(raw['raw_object'], self.kind))
        except ApiException as e:
            error = translate_api_exception(e, self.kind.value)
            yield WatchEvent(type=EventType.ERROR, status=error_status(e.status or 500, error.reason, error.message))

    def stop(self) -> None:
        self._watch.stop()


class KubernetesStore(ResourceStore):
    """Resource Store backed by the Kubernetes API"""

    def __init__(self, api_client: client.ApiClient = None):
        """
        Initialize the store

        Args:
            api_client: Configured API client (default client when omitted)
        """
        self.api_client = api_client or client.ApiClient()
        self.custom_api = client.CustomObjectsApi(self.api_client)
        self.core_api = client.CoreV1Api(self.api_client)
        self.rbac_api = client.RbacAuthorizationV1Api(self.api_client)

    def _to_object(self, kind: Kind, response: Any) -> KubeObject:
        if not isinstance(response, dict):
            response = self.api_client.sanitize_for_serialization(response)
        return object_from_dict(response, kind)

    def _call(self, kind: Kind, name: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ApiException as e:
            raise translate_api_exception(e, kind.value, name)

    def _body(self, obj: KubeObject, include_status: bool = True) -> Dict[str, Any]:
        body = obj.to_dict()
        if not include_status:
            body.pop('status', None)
        return body

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get(self, kind: Kind, name: str, namespace: str = "") -> KubeObject:
        info = kind.info
        if kind == Kind.NAMESPACE:
            response = self._call(kind, name, self.core_api.read_namespace, name)
        elif kind == Kind.ROLE:
            response = self._call(kind, name, self.rbac_api.read_namespaced_role, name, namespace)
        elif kind == Kind.ROLE_BINDING:
            response = self._call(kind, name, self.rbac_api.read_namespaced_role_binding, name, namespace)
        elif info.namespaced:
            response = self._call(kind, name, self.custom_api.get_namespaced_custom_object,
                                  info.api_group, info.version, namespace, info.plural, name)
        else:
            response = self._call(kind, name, self.custom_api.get_cluster_custom_object,
                                  info.api_group, info.version, info.plural, name)
        return self._to_object(kind, response)

    def list(self, kind: Kind, namespace: Optional[str] = None) -> List[KubeObject]:
        info = kind.info
        if kind == Kind.NAMESPACE:
            response = self._call(kind, "", self.core_api.list_namespace)
        elif kind == Kind.ROLE:
            if namespace is None:
                response = self._call(kind, "", self.rbac_api.list_role_for_all_namespaces)
            else:
                response = self._call(kind, "", self.rbac_api.list_namespaced_role, namespace)
        elif kind == Kind.ROLE_BINDING:
            if namespace is None:
                response = self._call(kind, "", self.rbac_api.list_role_binding_for_all_namespaces)
            else:
                response = self._call(kind, "", self.rbac_api.list_namespaced_role_binding, namespace)
        elif info.namespaced and namespace is not None:
            response = self._call(kind, "", self.custom_api.list_namespaced_custom_object,
                                  info.api_group, info.version, namespace, info.plural)
        else:
            response = self._call(kind, "", self.custom_api.list_cluster_custom_object,
                                  info.api_group, info.version, info.plural)

        if not isinstance(response, dict):
            response = self.api_client.sanitize_for_serialization(response)
        return [object_from_dict(item, kind) for item in response.get('items') or []]

    def watch(self, kind: Kind, namespace: Optional[str] = None) -> Watcher:
        info = kind.info
        if kind == Kind.NAMESPACE:
            return KubernetesWatcher(kind, self.core_api.list_namespace)
        if kind == Kind.ROLE:
            if namespace is None:
                return KubernetesWatcher(kind, self.rbac_api.list_role_for_all_namespaces)
            return KubernetesWatcher(kind, self.rbac_api.list_namespaced_role, namespace)
        if kind == Kind.ROLE_BINDING:
            if namespace is None:
                return KubernetesWatcher(kind, self.rbac_api.list_role_binding_for_all_namespaces)
            return KubernetesWatcher(kind, self.rbac_api.list_namespaced_role_binding, namespace)
        if info.namespaced and namespace is not None:
            return KubernetesWatcher(kind, self.custom_api.list_namespaced_custom_object,
                                     info.api_group, info.version, namespace, info.plural)
        return KubernetesWatcher(kind, self.custom_api.list_cluster_custom_object,
                                 info.api_group, info.version, info.plural)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def create(self, obj: KubeObject) -> KubeObject:
        kind, info = obj.KIND, obj.KIND.info
        name, namespace = obj.metadata.name, obj.metadata.namespace
        body = self._body(obj, include_status=False)
        if kind == Kind.NAMESPACE:
            response = self._call(kind, name, self.core_api.create_namespace, body)
        elif kind == Kind.ROLE:
            response = self._call(kind, name, self.rbac_api.create_namespaced_role, namespace, body)
        elif kind == Kind.ROLE_BINDING:
            response = self._call(kind, name, self.rbac_api.create_namespaced_role_binding, namespace, body)
        elif info.namespaced:
            response = self._call(kind, name, self.custom_api.create_namespaced_custom_object,
                                  info.api_group, info.version, namespace, info.plural, body)
        else:
            response = self._call(kind, name, self.custom_api.create_cluster_custom_object,
                                  info.api_group, info.version, info.plural, body)
        logger.debug(f"Created {obj.key()}")
        return self._to_object(kind, response)

    def update(self, obj: KubeObject) -> KubeObject:
        kind, info = obj.KIND, obj.KIND.info
        name, namespace = obj.metadata.name, obj.metadata.namespace
        body = self._body(obj)
        if kind == Kind.NAMESPACE:
            response = self._call(kind, name, self.core_api.replace_namespace, name, body)
        elif kind == Kind.ROLE:
            response = self._call(kind, name, self.rbac_api.replace_namespaced_role, name, namespace, body)
        elif kind == Kind.ROLE_BINDING:
            response = self._call(kind, name, self.rbac_api.replace_namespaced_role_binding, name, namespace, body)
        elif info.namespaced:
            response = self._call(kind, name, self.custom_api.replace_namespaced_custom_object,
                                  info.api_group, info.version, namespace, info.plural, name, body)
        else:
            response = self._call(kind, name, self.custom_api.replace_cluster_custom_object,
                                  info.api_group, info.version, info.plural, name, body)
        return self._to_object(kind, response)

    def update_status(self, obj: KubeObject) -> KubeObject:
        kind, info = obj.KIND, obj.KIND.info
        name, namespace = obj.metadata.name, obj.metadata.namespace
        if kind not in Kind.get_custom_kinds():
            raise BadRequestError(f"{kind.value} has no status subresource")
        body = self._body(obj)
        if info.namespaced:
            response = self._call(kind, name, self.custom_api.replace_namespaced_custom_object_status,
                                  info.api_group, info.version, namespace, info.plural, name, body)
        else:
            response = self._call(kind, name, self.custom_api.replace_cluster_custom_object_status,
                                  info.api_group, info.version, info.plural, name, body)
        return self._to_object(kind, response)

    def delete(self, kind: Kind, name: str, namespace: str = "") -> None:
        info = kind.info
        if kind == Kind.NAMESPACE:
            self._call(kind, name, self.core_api.delete_namespace, name)
        elif kind == Kind.ROLE:
            self._call(kind, name, self.rbac_api.delete_namespaced_role, name, namespace)
        elif kind == Kind.ROLE_BINDING:
            self._call(kind, name, self.rbac_api.delete_namespaced_role_binding, name, namespace)
        elif info.namespaced:
            self._call(kind, name, self.custom_api.delete_namespaced_custom_object,
                       info.api_group, info.version, namespace, info.plural, name)
        else:
            self._call(kind, name, self.custom_api.delete_cluster_custom_object,
                       info.api_group, info.version, info.plural, name)
        logger.debug(f"Requested deletion of {kind.value} {namespace + '/' if namespace else ''}{name}")
