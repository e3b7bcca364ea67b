import pytest

from jz.analyzer import analyze
from jz.errors import ResourceNotFoundError
from jz.flow_extractor import extract_flows
from jz.models import Confidence, FlowStepKind, ResolutionScope
from jz.observability import get_metrics_collector

from java_trees import REPORT_API, TENANT_API, make_war

GUARDS = """
    package test.guards;

    import javax.ws.rs.POST;
    import javax.ws.rs.Path;
    import javax.ws.rs.core.Response;

    @Path("/v1/example")
    public class ExampleApiV1 {

        @POST
        public Response handleGuards(String input) {
            if (input == null) {
                return Response.status(400).build();
            }

            if (input.isEmpty()) {
                return Response.status(422).build();
            } else {
                audit(input);
            }

            return Response.ok("Valid").build();
        }
    }
"""

OUTBOUND = """
    package test.outbound;

    @Path("/v1/example")
    public class ExampleApiV1 {

        @GET
        public Response handleOutbound() {
            Client client = ClientBuilder.newClient();
            client.target("http://external-service/v1/api").request().get();
            return Response.ok("Done").build();
        }
    }
"""

CHAIN = """
    @Path("/chain")
    public class Chain {
        @GET
        public String start() {
            first();
            return "ok";
        }

        private void first() {
            second();
        }

        private void second() {
            third();
        }

        private void third() {
            return;
        }
    }
"""

WALKER = """
    @Path("/walk")
    public class Walker {
        @GET
        public String walk() {
            visit(0);
            return "done";
        }

        @GET
        @Path("/twice")
        public String twice() {
            helper();
            helper();
            return "x";
        }

        private void visit(int n) {
            visit(n + 1);
        }

        private void helper() {
            log("h");
        }
    }
"""


def flows_for(tmp_path, java, resource, **kwargs):
    root = make_war(tmp_path / "war", java)
    return extract_flows(analyze(root).services, resource, **kwargs)


def summary(flow):
    return [(s.kind, s.description) for s in flow.steps]


def test_guards(tmp_path):
    [flow] = flows_for(tmp_path, {"ExampleApiV1.java": GUARDS}, "ExampleApiV1")
    assert flow.entry_point == "POST /v1/example"
    assert summary(flow) == [
        (FlowStepKind.ENTRY, "Enter: handleGuards"),
        (FlowStepKind.CONDITION, "Check: input == null"),
        (FlowStepKind.RETURN, "Return: Response.status(400).build()"),
        (FlowStepKind.CONDITION, "Check: input.isEmpty()"),
        (FlowStepKind.RETURN, "Return: Response.status(422).build()"),
        (FlowStepKind.CONDITION, "Otherwise"),
        (FlowStepKind.RETURN, 'Return: Response.ok("Valid").build()'),
    ]
    assert [s.index for s in flow.steps] == list(range(1, 8))
    assert flow.steps[1].confidence == Confidence.MEDIUM
    source = str(tmp_path / "war" / "src" / "ExampleApiV1.java")
    assert flow.steps[0].evidence == f"{source} (start)"
    assert flow.steps[1].evidence == f"{source}:12"
    assert get_metrics_collector().flows_extracted == 1


def test_outbound_step(tmp_path):
    [flow] = flows_for(tmp_path, {"ExampleApiV1.java": OUTBOUND}, "ExampleApiV1")
    outbound = [s for s in flow.steps if s.kind == FlowStepKind.OUTBOUND]
    assert [s.description for s in outbound] == ["Call: GET http://external-service/v1/api"]
    assert outbound[0].resolution_scope == ResolutionScope.UNRESOLVED
    assert outbound[0].confidence == Confidence.HIGH
    assert outbound[0].to_method == ""


def test_outbound_step_inherits_resolution(tmp_path):
    [flow] = flows_for(tmp_path, {"TenantApiV1.java": TENANT_API, "ReportApi.java": REPORT_API}, "ReportApi")
    [outbound] = [s for s in flow.steps if s.kind == FlowStepKind.OUTBOUND]
    assert outbound.resolution_scope == ResolutionScope.SAME_SERVICE
    assert outbound.to_method == "tenant-api -> TenantApiV1"


def test_depth_limit(tmp_path):
    [flow] = flows_for(tmp_path, {"Chain.java": CHAIN}, "Chain", max_depth=2)
    assert summary(flow) == [
        (FlowStepKind.ENTRY, "Enter: start"),
        (FlowStepKind.CALL, "Call internal: first"),
        (FlowStepKind.CALL, "Call internal: second"),
        (FlowStepKind.UNEXPANDED, "Call internal: third (unexpanded - depth limit)"),
        (FlowStepKind.RETURN, 'Return: "ok"'),
    ]
    assert flow.steps[1].to_method == "Chain.first"


def test_depth_zero_expands_nothing(tmp_path):
    [flow] = flows_for(tmp_path, {"Chain.java": CHAIN}, "Chain", max_depth=0)
    assert [s.kind for s in flow.steps] == [FlowStepKind.ENTRY, FlowStepKind.UNEXPANDED, FlowStepKind.RETURN]


def test_self_recursion_stops(tmp_path):
    flows = flows_for(tmp_path, {"Walker.java": WALKER}, "Walker", verb_filter="get", max_depth=10)
    assert [f.entry_point for f in flows] == ["GET /walk", "GET /walk/twice"]
    flow = flows[0]
    assert summary(flow) == [
        (FlowStepKind.ENTRY, "Enter: walk"),
        (FlowStepKind.CALL, "Call internal: visit"),
        (FlowStepKind.UNEXPANDED, "Call internal: visit (unexpanded - already visited / potential cycle)"),
        (FlowStepKind.RETURN, 'Return: "done"'),
    ]


def test_visited_set_is_shared_across_siblings(tmp_path):
    [flow] = flows_for(tmp_path, {"Walker.java": WALKER}, "Walker", path_filter="twice")
    assert flow.entry_point == "GET /walk/twice"
    assert [s.kind for s in flow.steps] == [
        FlowStepKind.ENTRY, FlowStepKind.CALL, FlowStepKind.UNEXPANDED, FlowStepKind.RETURN,
    ]


def test_filters(tmp_path):
    root = make_war(tmp_path / "war", {"Walker.java": WALKER})
    services = analyze(root).services
    assert len(extract_flows(services, "Walker", path_filter="*")) == 2
    assert extract_flows(services, "Walker", verb_filter="POST") == []


def test_unknown_resource(tmp_path):
    root = make_war(tmp_path / "war", {"Walker.java": WALKER})
    with pytest.raises(ResourceNotFoundError):
        extract_flows(analyze(root).services, "Nope")


def test_unreadable_source_yields_empty_steps(tmp_path):
    root = make_war(tmp_path / "war", {"Chain.java": CHAIN})
    services = analyze(root).services
    (root / "src" / "Chain.java").unlink()
    [flow] = extract_flows(services, "Chain")
    assert flow.entry_point == "GET /chain"
    assert flow.steps == []


COMMENTED = """
    @Path("/legacy")
    public class Legacy {
        @GET
        public String run() {
            // legacyHelper();
            // client.target("/c").request().get();
            return "ok";
        }

        private void legacyHelper() {
            audit();
        }

        private void audit() {
            log("x");
        }
    }
"""


def test_commented_out_calls_are_ignored(tmp_path):
    root = make_war(tmp_path / "war", {"Legacy.java": COMMENTED})
    services = analyze(root).services
    assert services[0].rest_calls == []
    [flow] = extract_flows(services, "Legacy")
    assert summary(flow) == [
        (FlowStepKind.ENTRY, "Enter: run"),
        (FlowStepKind.RETURN, 'Return: "ok"'),
    ]
