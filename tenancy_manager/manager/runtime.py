"""
Operator Runtime

Runs the tenancy controllers as kopf handlers. Every primary kind gets
resume, create, update and delete handlers plus a resync timer. Every kind a
controller depends on gets an event handler that keeps the reverse index
current and reconciles the requests returned by the watch mappers.

kopf owns the watch streams, the handler threads, retry delays and the
peering-based leader election.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

import kopf
from kubernetes import client as k8s_client

from ..controllers import INDEXED_KINDS, create_controllers
from ..controllers.base import BaseReconciler, Request, WatchSpec
from ..controllers.index import ReverseIndex
from ..core.config import ManagerConfig
from ..core.constants import Kind, TenancyConstants
from ..core.exceptions import MappingError, TenancyError
from ..core.models import object_from_dict
from ..store.base import EventType, ResourceStore, WatchEvent
from ..store.client import Client
from ..store.kube import KubernetesStore, create_api_client

logger = logging.getLogger(__name__)

Route = Tuple[BaseReconciler, WatchSpec]


def resource_selector(kind: Kind) -> Dict[str, str]:
    """Keyword arguments selecting ``kind`` in kopf handler decorators"""
    info = kind.info
    if not info.api_group:
        return {'version': info.version, 'plural': info.plural}
    return {'group': info.api_group, 'version': info.version, 'plural': info.plural}


def connection_info(configuration: k8s_client.Configuration) -> kopf.ConnectionInfo:
    """
    Translate a kubernetes client configuration into kopf credentials

    Used as the kopf login handler so that kopf talks to the cluster
    selected by the manager settings (kubeconfig, context, in-cluster).
    """
    scheme = token = None
    header = configuration.get_api_key_with_prefix('authorization')
    if header:
        parts = header.split(' ', 1)
        if len(parts) == 2:
            scheme, token = parts
        else:
            token = parts[0]

    return kopf.ConnectionInfo(
        server=configuration.host,
        ca_path=configuration.ssl_ca_cert,
        insecure=not configuration.verify_ssl,
        username=configuration.username or None,
        password=configuration.password or None,
        scheme=scheme,
        token=token,
        certificate_path=configuration.cert_file,
        private_key_path=configuration.key_file,
    )


class Operator:
    """kopf wiring of a set of controllers sharing one store client"""

    def __init__(self, client: Client, controllers: List[BaseReconciler],
                 settings: Optional[ManagerConfig] = None, index: Optional[ReverseIndex] = None,
                 api_client: Optional[k8s_client.ApiClient] = None):
        """
        Initialize the operator

        Args:
            client: Store client shared by every controller
            controllers: Controllers to run
            settings: Runtime settings (defaults to ``ManagerConfig()``)
            index: Reverse index fed from watch events before mapping
            api_client: Kubernetes client whose credentials kopf logs in
                with; kopf's own login handlers apply when omitted
        """
        self.client = client
        self.controllers = controllers
        self.settings = settings or ManagerConfig()
        self.index = index
        self.api_client = api_client
        self.stop_flag = threading.Event()

        self._routes: Dict[Kind, List[Route]] = defaultdict(list)
        for controller in controllers:
            for spec in controller.watches():
                if spec.mapper is not None:
                    self._routes[spec.kind].append((controller, spec))

        self._locks: Dict[Request, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def watched_kinds(self) -> List[Kind]:
        """Kinds needing an event handler: mapped secondary watches and indexed kinds"""
        kinds = list(self._routes)
        if self.index is not None:
            kinds.extend(kind for kind in self.index.kinds if kind not in kinds)
        return kinds

    def backoff(self, retry: int) -> float:
        """Exponential retry delay for the given kopf retry count"""
        delay = self.settings.backoff_base_seconds * (2 ** min(retry, 32))
        return min(delay, self.settings.backoff_max_seconds)

    def _lock_for(self, request: Request) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(request, threading.Lock())

    def reconcile_request(self, controller: BaseReconciler, request: Request) -> bool:
        """Reconcile ``request`` with no other reconcile of the same object in flight"""
        with self._lock_for(request):
            return controller.reconcile(request)

    def handle_change(self, controller: BaseReconciler, name: str, namespace: Optional[str],
                      retry: int = 0) -> None:
        """
        Reconcile a primary object on behalf of a kopf handler

        Args:
            controller: Controller owning the object's kind
            name: Object name
            namespace: Object namespace (None for cluster-scoped kinds)
            retry: kopf retry count of this handler

        Raises:
            kopf.TemporaryError: If the attempt failed or a deletion still
                waits for owned objects; kopf calls again after the backoff delay
        """
        request = Request(controller.KIND, name, namespace or "")
        delay = self.backoff(retry)
        try:
            settled = self.reconcile_request(controller, request)
        except TenancyError as e:
            logger.error(f"Reconciling {request} failed (attempt {retry + 1}): {e}")
            raise kopf.TemporaryError(f"{request}: {e}", delay=delay)

        if not settled:
            logger.debug(f"{request} is waiting for owned objects to be deleted")
            raise kopf.TemporaryError(f"{request} is waiting for owned objects to be deleted", delay=delay)

    def handle_event(self, kind: Kind, event: Dict[str, Any]) -> None:
        """
        Fan a watch event of ``kind`` out to the controllers depending on it

        Failed reconciles are logged; the resync timers of the primary
        objects pick them up again.

        Args:
            kind: Kind of the watched object
            event: Raw kopf event (``type`` is None for the initial listing)
        """
        raw = event.get('object')
        if not raw:
            return

        watch_event = WatchEvent(EventType(event.get('type') or EventType.ADDED.value),
                                 object_from_dict(dict(raw), kind))
        if self.index is not None:
            self.index.observe(watch_event)

        for controller, spec in self._routes.get(kind, []):
            try:
                requests = spec.requests_for(watch_event.object)
            except MappingError as e:
                logger.error(f"Mapping {watch_event.object.key()} for {controller.name} failed: {e}")
                if self.index is not None:
                    self.index.invalidate()
                continue

            for request in requests:
                try:
                    self.reconcile_request(controller, request)
                except TenancyError as e:
                    logger.warning(f"Reconciling {request} after a {kind.value} event failed: {e}")

    def register(self, registry: Optional[kopf.OperatorRegistry] = None) -> kopf.OperatorRegistry:
        """
        Register every handler

        Args:
            registry: Registry to fill (a new one by default)

        Returns:
            The filled registry
        """
        registry = registry if registry is not None else kopf.OperatorRegistry()

        kopf.on.startup(id='configure', registry=registry)(self.configure)
        if self.api_client is not None:
            kopf.on.login(id='login', registry=registry)(self.login)

        for controller in self.controllers:
            self._register_controller(registry, controller)
        for kind in self.watched_kinds:
            self._register_events(registry, kind)

        logger.info(f"Registered {len(self.controllers)} controllers and "
                    f"{len(self.watched_kinds)} watched kinds")
        return registry

    def _register_controller(self, registry: kopf.OperatorRegistry, controller: BaseReconciler) -> None:
        selector = resource_selector(controller.KIND)
        prefix = controller.name.lower()

        def on_change(name, namespace, retry, **_):
            self.handle_change(controller, name, namespace, retry)

        kopf.on.resume(id=f"{prefix}-resume", registry=registry, **selector)(on_change)
        kopf.on.create(id=f"{prefix}-create", registry=registry, **selector)(on_change)
        kopf.on.update(id=f"{prefix}-update", registry=registry, **selector)(on_change)
        kopf.on.delete(id=f"{prefix}-delete", registry=registry, **selector)(on_change)
        if self.settings.resync_seconds > 0:
            kopf.on.timer(id=f"{prefix}-resync", interval=self.settings.resync_seconds,
                          registry=registry, **selector)(on_change)

    def _register_events(self, registry: kopf.OperatorRegistry, kind: Kind) -> None:
        def on_event(event, **_):
            self.handle_event(kind, event)

        kopf.on.event(id=f"{kind.value.lower()}-event", registry=registry,
                      **resource_selector(kind))(on_event)

    def configure(self, settings: kopf.OperatorSettings, **_) -> None:
        """Startup handler applying the manager settings to kopf"""
        settings.persistence.finalizer = TenancyConstants.OPERATOR_FINALIZER
        settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
            prefix=TenancyConstants.OPERATOR_ANNOTATION_PREFIX)
        settings.posting.enabled = False
        settings.execution.max_workers = max(1, self.settings.workers * len(self.controllers))
        logger.info(f"kopf configured with {settings.execution.max_workers} handler threads")

    def login(self, **_) -> kopf.ConnectionInfo:
        return connection_info(self.api_client.configuration)

    def run(self) -> None:
        """Run the operator until stopped; blocks the calling thread"""
        registry = self.register()
        peering = self.settings.peering or None
        if peering is None:
            logger.info("Running standalone (no peering configured)")
        kopf.run(
            registry=registry,
            clusterwide=True,
            standalone=peering is None,
            peering_name=peering,
            liveness_endpoint=self.settings.liveness_endpoint or None,
            stop_flag=self.stop_flag,
        )

    def stop(self) -> None:
        """Ask a running operator to exit"""
        self.stop_flag.set()


def create_operator(settings: Optional[ManagerConfig] = None, store: Optional[ResourceStore] = None) -> Operator:
    """
    Factory function to create the operator with every tenancy controller

    Args:
        settings: Runtime settings
        store: Object store; a cluster-backed store is built when omitted

    Returns:
        Operator
    """
    settings = settings or ManagerConfig()
    api_client = None
    if store is None:
        api_client = create_api_client(settings)
        store = KubernetesStore(api_client)

    client = Client(store, max_conflict_retries=settings.max_conflict_retries)
    index = ReverseIndex(client, INDEXED_KINDS)
    return Operator(client, create_controllers(client, index), settings, index, api_client)
