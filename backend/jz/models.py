from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---- Closed tag types ----
class AppType(str, Enum):
    APPLICATION = "application"
    WEB_APPLICATION = "webApplication"

class DetectionType(str, Enum):
    LITERAL = "literal"
    CONSTANT = "constant"
    UNKNOWN = "unknown"

class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class ResolutionScope(str, Enum):
    SAME_SERVICE = "same-service"
    CROSS_SERVICE = "cross-service"
    UNRESOLVED = "unresolved"

class BoundaryType(str, Enum):
    PACKAGE = "package"
    RESOURCE_GROUP = "resource-group"

class FlowStepKind(str, Enum):
    ENTRY = "entry"
    CONDITION = "condition"
    CALL = "call"
    OUTBOUND = "outbound"
    RETURN = "return"
    UNEXPANDED = "unexpanded"

class FlowStatus(str, Enum):
    UNCHANGED = "UNCHANGED"
    MODIFIED = "MODIFIED"
    ADDED = "ADDED"
    REMOVED = "REMOVED"

class StepDiffKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


# ---- Descriptor records ----
class Bundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbolic_name: str = Field(..., description="Bundle-SymbolicName without attributes")
    name: str = Field("", description="Bundle-Name header")
    version: str = Field("", description="Bundle-Version header")
    service_components: List[str] = Field(default_factory=list, description="Service-Component path patterns")
    manifest_path: str = Field(..., description="Path to MANIFEST.MF")

class LibertyApp(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    location: str = ""
    type: AppType = AppType.APPLICATION
    context_root: Optional[str] = None

class LibertyServer(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    server_xml: str = Field(..., description="Path to server.xml")
    enabled_features: List[str] = Field(default_factory=list, description="Ordered unique feature names")
    deployed_apps: List[LibertyApp] = Field(default_factory=list)

class DSComponent(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    implementation_class: str = ""
    immediate: bool = False
    provided_interfaces: List[str] = Field(default_factory=list)
    referenced_interfaces: List[str] = Field(default_factory=list)
    source_xml: str = Field(..., description="Descriptor the component was read from")


# ---- REST model ----
class EntryPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str = Field(..., description="HTTP verb")
    path: str = Field(..., description="Normalized class path + method path")
    handler: str = Field(..., description="ClassName.methodName")
    source_file: str
    resource: str = Field(..., description="Class-name portion of the handler")

class RESTCall(BaseModel):
    from_service: str
    from_resource: str
    from_handler: str = Field(..., description="ClassName.methodName of the calling handler")
    http_method: Optional[str] = None
    target_path: str = ""
    target_service: Optional[str] = Field(None, description="Set only on unambiguous resolution")
    target_resource: Optional[str] = Field(None, description="Set only on unambiguous resolution")
    source_file: str
    line: int = 0
    detection_type: DetectionType = DetectionType.UNKNOWN
    confidence: Confidence = Confidence.LOW
    resolution_scope: ResolutionScope = ResolutionScope.UNRESOLVED
    resolution_evidence: str = ""

class RESTMethod(BaseModel):
    http_method: str
    sub_path: str
    full_path: str
    handler: str
    source_file: str

    @property
    def method_name(self) -> str:
        return self.handler.split(".", 1)[1] if "." in self.handler else self.handler

class RESTResource(BaseModel):
    name: str = Field(..., description="Resource class name")
    package: str = ""
    source_file: str
    base_path: str = ""
    entry_points: List[EntryPoint] = Field(default_factory=list)
    methods: List[RESTMethod] = Field(default_factory=list)
    http_methods: Dict[str, int] = Field(default_factory=dict, description="Verb histogram")
    path_params: List[str] = Field(default_factory=list)
    auth_annotations: List[str] = Field(default_factory=list)
    consumes: List[str] = Field(default_factory=list)
    produces: List[str] = Field(default_factory=list)
    outbound_calls: List[RESTCall] = Field(default_factory=list)
    inbound_calls: List[RESTCall] = Field(default_factory=list)

class ServiceBoundary(BaseModel):
    service_name: str
    boundary_type: BoundaryType
    identifier: str
    evidence: str


# ---- Graphs ----
class ComponentNode(BaseModel):
    name: str
    implementation_class: str = ""
    immediate: bool = False

class DependencyEdge(BaseModel):
    from_component: str
    to_component: str
    interface: str

class DependencyGraph(BaseModel):
    nodes: List[ComponentNode] = Field(default_factory=list)
    edges: List[DependencyEdge] = Field(default_factory=list)

class ServiceDependency(BaseModel):
    from_service: str
    to_service: str
    interface: str

class SystemGraph(BaseModel):
    services: List[str] = Field(default_factory=list)
    dependencies: List[ServiceDependency] = Field(default_factory=list)


# ---- Services ----
class Service(BaseModel):
    name: str
    root_path: str
    entry_points: List[EntryPoint] = Field(default_factory=list)
    components: List[DSComponent] = Field(default_factory=list)
    internal_graph: DependencyGraph = Field(default_factory=DependencyGraph)
    server_name: str = ""
    features: List[str] = Field(default_factory=list)
    application: Optional[LibertyApp] = None
    rest_resources: List[RESTResource] = Field(default_factory=list)
    rest_calls: List[RESTCall] = Field(default_factory=list)
    boundaries: List[ServiceBoundary] = Field(default_factory=list)

    def find_resource(self, name: str) -> Optional[RESTResource]:
        return next((r for r in self.rest_resources if r.name == name), None)

class Diagnostic(BaseModel):
    has_osgi: bool = Field(False, description="OSGi bundles detected")
    has_liberty: bool = Field(False, description="Liberty server.xml recognised")
    any_manifest_found: bool = Field(False, description="Any MANIFEST.MF found, OSGi or not")
    has_liberty_war: bool = Field(False, description="Web application modeled as one synthetic service")

class AnalysisResult(BaseModel):
    services: List[Service] = Field(default_factory=list)
    system_graph: SystemGraph = Field(default_factory=SystemGraph)
    diagnostic: Diagnostic = Field(default_factory=Diagnostic)


# ---- Execution flows ----
class FlowStep(BaseModel):
    index: int = 0
    kind: FlowStepKind
    description: str
    from_method: str = ""
    to_method: str = ""
    confidence: Confidence = Confidence.HIGH
    evidence: str = ""
    resolution_scope: Optional[ResolutionScope] = None

class ExecutionFlow(BaseModel):
    resource_name: str
    entry_point: str = Field(..., description="HTTP verb + full path")
    steps: List[FlowStep] = Field(default_factory=list)

class StepDiff(BaseModel):
    kind: StepDiffKind
    before: Optional[FlowStep] = None
    after: Optional[FlowStep] = None

class FlowDiff(BaseModel):
    entry_point: str
    status: FlowStatus
    step_diffs: List[StepDiff] = Field(default_factory=list)


# ---- API payloads ----
class AnalyzeRequest(BaseModel):
    root: str = Field(..., description="Directory to analyze")
    service: Optional[str] = Field(None, description="Restrict the result to one service")

class FlowRequest(BaseModel):
    root: str = Field(..., description="Directory to analyze")
    resource: str = Field(..., description="REST resource class name")
    method: Optional[str] = Field(None, description="HTTP verb filter, case-insensitive")
    path: Optional[str] = Field(None, description="Substring filter on the full path; '*' matches all")
    max_depth: Optional[int] = Field(None, ge=0, description="Internal call expansion depth")

class FlowDiffRequest(BaseModel):
    root_a: str = Field(..., description="Baseline version of the code")
    root_b: str = Field(..., description="Changed version of the code")
    resource: str
    method: Optional[str] = None
    path: Optional[str] = None
    max_depth: Optional[int] = Field(None, ge=0)
