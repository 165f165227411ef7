from fastapi import status

DOCUMENT = [
    {"id": "root", "type": "vstack", "style": {"padding": 16}, "props": {}, "children": [
        {"id": "greeting", "type": "text", "style": {}, "props": {"text": "Hi {name}"}},
        {"id": "opt_a", "type": "hstack", "style": {}, "props": {}, "action": {"type": "toggle", "group": "goal"}},
        {"id": "cta", "type": "hstack", "style": {}, "props": {}, "visibleWhen": {"group": "goal", "hasSelection": True},
         "actions": [{"type": "set_variable", "variable": "goal", "value": "fitness"},
                     {"type": "navigate", "destination": {"if": {"variable": "goal", "operator": "equals", "value": "fitness"},
                                                          "then": "fitness_intro"}}]},
        {"id": "logo", "type": "image", "style": {}, "props": {"url": "asset:logo"}},
    ]},
]

def test_render_preview(client, org):
    payload = {
        "elements": DOCUMENT,
        "assets": [{"name": "logo", "type": "image", "data": "data:image/png;base64,AAA"}],
        "variables": {"name": "Ada"},
        "taps": ["cta", "opt_a", "cta"],
        "include_html": True,
    }
    response = client.post("/screens/render", json=payload, headers=org["headers"])
    assert response.status_code == status.HTTP_200_OK
    data = response.json()

    # first cta tap is ignored: hidden until the goal group has a selection
    assert data["ignored_taps"] == ["cta"]
    assert data["selection"] == {"toggled_ids": ["opt_a"], "group_selections": {"goal": "opt_a"}}
    assert data["variables"] == {"name": "Ada", "goal": "fitness"}
    assert data["intents"] == [{"type": "navigate", "element_id": "cta", "destination": "fitness_intro"}]

    root = data["view"]["children"][0]
    assert root["children"][0]["text"] == "Hi Ada"
    assert root["children"][3]["attrs"]["src"] == "data:image/png;base64,AAA"
    assert 'data-element-id="greeting"' in data["html"]

def test_render_preview_isolates_bad_elements(client, org):
    payload = {"elements": [{"type": "text", "props": {"text": "no id"}}, {"id": "ok", "type": "text", "props": {"text": "fine"}}]}
    data = client.post("/screens/render", json=payload, headers=org["headers"]).json()
    kinds = [child["kind"] for child in data["view"]["children"]]
    assert kinds == ["error", "text"]

def test_render_requires_key(client):
    assert client.post("/screens/render", json={"elements": []}).status_code == status.HTTP_401_UNAUTHORIZED

def test_render_preview_survives_malformed_actions(client, org):
    payload = {
        "elements": [
            {"id": "panel", "type": "vstack", "visibleWhen": {"group": "goal", "hasSelection": True}, "children": [
                {"id": "go", "type": "text", "action": {"type": "navigate", "destination": "next"}},
            ]},
            {"id": "cta", "type": "text", "action": {"type": "navigate", "destination": {"routes": ["bad"], "default": "home"}}},
        ],
        "taps": ["go", "cta"],
    }
    response = client.post("/screens/render", json=payload, headers=org["headers"])
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["ignored_taps"] == ["go"]
    assert data["intents"] == [{"type": "navigate", "element_id": "cta", "destination": "home"}]
