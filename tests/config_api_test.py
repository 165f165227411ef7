from fastapi import status
from data.database import OnboardingConfig

def test_config_returns_published_flow_and_active_experiments(client, org, make_experiment, flow_screens):
    active_id = make_experiment()
    make_experiment(status="draft")

    response = client.get("/config", headers=org["headers"])
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["config_id"] == org["flow_a"]
    assert data["version"] == "1.2.0"
    assert data["config"]["screens"] == flow_screens["a"]
    assert data["organization_id"] == org["id"]
    assert data["project_id"] is None
    assert [e["id"] for e in data["experiments"]] == [active_id]

def test_config_is_per_environment(client, org):
    # nothing is published to production in the fixture
    response = client.get("/config", headers=org["live_headers"])
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["config"] == {"version": "1.0.0", "screens": []}
    assert response.json()["config_id"] is None

def test_config_for_project_key(client, db_session, org, project, make_experiment):
    make_experiment()
    project_experiment = make_experiment(project_id=project["id"])
    flow = OnboardingConfig(organization_id=org["id"], project_id=project["id"], name="Project flow",
                            environment="test", is_published=True, version="3.0.0",
                            config={"version": "3.0.0", "screens": []})
    db_session.add(flow)
    db_session.commit()

    data = client.get("/config", headers=project["headers"]).json()
    assert data["project_id"] == project["id"]
    assert data["config_id"] == flow.id
    assert [e["id"] for e in data["experiments"]] == [project_experiment]

def test_config_requires_key(client):
    assert client.get("/config").status_code == status.HTTP_401_UNAUTHORIZED
