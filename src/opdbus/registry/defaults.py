"""Seed catalog loaded into :class:`~opdbus.registry.store.InMemoryRegistry` at startup."""

from typing import List

from opdbus.core.schema import (
    DBusInterface,
    DBusMethod,
    DBusMethodArg,
    DBusObject,
    DBusProperty,
    DBusService,
    ExecutionProfile,
    MCPAgent,
    Plugin,
    Skill,
)

EXECUTION_PROFILES: List[ExecutionProfile] = [
    ExecutionProfile(
        id="profile-realtime",
        name="Real-time Fast",
        description="Optimized for low latency and high throughput",
        model_preferences=["gpt-4o-mini"],
        temperature=0.1,
        timeout_ms=5000,
        max_retries=1,
        icon="⚡",
    ),
    ExecutionProfile(
        id="profile-reasoning",
        name="Deep Reasoning",
        description="Complex problem solving and code generation",
        model_preferences=["claude-3-5-sonnet-latest", "gpt-4o"],
        temperature=0.2,
        timeout_ms=60000,
        max_retries=2,
        icon="🧠",
    ),
    ExecutionProfile(
        id="profile-creative",
        name="Creative Flow",
        description="Content generation and brainstorming",
        model_preferences=["gpt-4o", "gpt-4o-mini"],
        temperature=0.8,
        timeout_ms=30000,
        max_retries=0,
        icon="🎨",
    ),
    ExecutionProfile(
        id="profile-architect",
        name="Backend Architect",
        description="Scalable system design, database topology, and cloud patterns",
        model_preferences=["gpt-4o", "claude-3-5-sonnet-latest"],
        temperature=0.4,
        timeout_ms=60000,
        max_retries=1,
        icon="🏗️",
    ),
]

PLUGINS: List[Plugin] = [
    Plugin(id="plugin-core", name="Core System", description="Essential Linux system management tools", version="1.0.0", icon="server"),  # noqa: E501
    Plugin(id="plugin-dev", name="Developer Tools", description="Code analysis, git, and testing utilities", version="2.1.0", icon="code"),  # noqa: E501
    Plugin(id="plugin-data", name="Data Science", description="Data processing, SQL, and visualization", version="1.5.0", icon="database"),  # noqa: E501
    Plugin(id="plugin-ops", name="DevOps & Cloud", description="Docker, K8s, and Infrastructure as Code", version="1.2.0", icon="cloud"),  # noqa: E501
    Plugin(id="plugin-sec", name="Security Audit", description="Vulnerability scanning and log analysis", version="1.0.1", icon="shield"),  # noqa: E501
]

SERVICES: List[DBusService] = [
    DBusService(
        id="1",
        name="org.freedesktop.systemd1",
        status="active",
        objects=[
            DBusObject(
                path="/org/freedesktop/systemd1",
                interfaces=[
                    DBusInterface(
                        name="org.freedesktop.systemd1.Manager",
                        methods=[
                            DBusMethod(
                                name="GetUnit",
                                args=[
                                    DBusMethodArg(name="name", type="s", direction="in"),
                                    DBusMethodArg(name="unit", type="o", direction="out"),
                                ],
                            ),
                            DBusMethod(
                                name="StartUnit",
                                args=[
                                    DBusMethodArg(name="name", type="s", direction="in"),
                                    DBusMethodArg(name="mode", type="s", direction="in"),
                                    DBusMethodArg(name="job", type="o", direction="out"),
                                ],
                            ),
                        ],
                        properties=[DBusProperty(name="Version", type="s", access="read")],
                    )
                ],
            )
        ],
    ),
    DBusService(id="2", name="org.freedesktop.NetworkManager", status="active"),
    DBusService(id="3", name="org.freedesktop.login1", status="inactive"),
]

AGENTS: List[MCPAgent] = [
    MCPAgent(id="agent-docker", name="Docker Orchestrator", url="http://localhost:8081", status="connected", capabilities=["list_containers", "build_image", "inspect_volume"], plugin_id="plugin-ops", execution_profile_id="profile-realtime"),  # noqa: E501
    MCPAgent(id="agent-k8s", name="K8s Cluster Mgr", url="http://localhost:8082", status="connected", capabilities=["kubectl_apply", "get_pods", "describe_service"], plugin_id="plugin-ops", execution_profile_id="profile-reasoning"),  # noqa: E501
    MCPAgent(id="agent-git", name="Git Operations", url="http://localhost:8083", status="connected", capabilities=["git_clone", "git_commit", "git_diff"], plugin_id="plugin-dev", execution_profile_id="profile-realtime"),  # noqa: E501
    MCPAgent(id="agent-review", name="Code Reviewer", url="http://localhost:8084", status="connected", capabilities=["analyze_pr", "suggest_refactor"], plugin_id="plugin-dev", execution_profile_id="profile-reasoning"),  # noqa: E501
    MCPAgent(id="agent-qa", name="QA Automation", url="http://localhost:8086", status="disconnected", capabilities=["run_selenium", "api_test"], plugin_id="plugin-dev", execution_profile_id="profile-reasoning"),  # noqa: E501
    MCPAgent(id="agent-arch", name="System Architect", url="http://localhost:8096", status="connected", capabilities=["design_review", "capacity_planning", "topology_gen"], plugin_id="plugin-ops", execution_profile_id="profile-architect"),  # noqa: E501
    MCPAgent(id="agent-postgres", name="Postgres DBA", url="http://localhost:5432/mcp", status="disconnected", capabilities=["query_db", "analyze_index"], plugin_id="plugin-data", execution_profile_id="profile-realtime"),  # noqa: E501
    MCPAgent(id="agent-sec", name="SecOps Sentinel", url="http://localhost:8094", status="connected", capabilities=["scan_vuln", "audit_logs"], plugin_id="plugin-sec", execution_profile_id="profile-realtime"),  # noqa: E501
]

SKILLS: List[Skill] = [
    Skill(id="skill-sys-1", name="Log Analysis", category="analysis", description="Analyzes system logs for errors.", parameters={"logSource": "string", "lines": "number"}, plugin_id="plugin-core", execution_profile_id="profile-realtime"),  # noqa: E501
    Skill(id="skill-sys-2", name="Config Backup", category="system", description="Snapshots property states.", parameters={"service": "string"}, plugin_id="plugin-core", execution_profile_id="profile-realtime"),  # noqa: E501
    Skill(id="skill-sys-4", name="System Health Check", category="system", description="Reports CPU, RAM, and Disk usage.", parameters={"detailLevel": "low|high"}, plugin_id="plugin-core", execution_profile_id="profile-realtime"),  # noqa: E501
    Skill(id="skill-code-1", name="Code Review", category="coding", description="Reviews code for security flaws.", parameters={"code": "string"}, plugin_id="plugin-dev", execution_profile_id="profile-reasoning"),  # noqa: E501
    Skill(id="skill-data-1", name="Text to SQL", category="data", description="Converts NLP to SQL.", parameters={"query": "string"}, plugin_id="plugin-data", execution_profile_id="profile-reasoning"),  # noqa: E501
    Skill(id="skill-ops-1", name="Dockerfile Gen", category="devops", description="Creates Dockerfiles.", parameters={"stack": "string"}, plugin_id="plugin-ops", execution_profile_id="profile-reasoning"),  # noqa: E501
    Skill(id="skill-arch-1", name="System Topology Gen", category="devops", description="Generates PlantUML for architecture.", parameters={"requirements": "string"}, plugin_id="plugin-ops", execution_profile_id="profile-architect"),  # noqa: E501
    Skill(id="skill-sec-2", name="CVE Lookup", category="security", description="Finds CVEs for package.", parameters={"package": "string"}, plugin_id="plugin-sec", execution_profile_id="profile-realtime"),  # noqa: E501
    Skill(id="skill-util-2", name="UUID Generator", category="utility", description="Generates V4 UUIDs.", parameters={"count": "number"}, plugin_id="plugin-core"),  # noqa: E501
]
